'''
**meteorhttp.http**
---------

The request builder and the shared client it dispatches through. Requests
may only reach the hosts in `ALLOWED_HOSTS`; anything else is refused before
a connection is opened, and again by the client transport.
'''
from meteorhttp.http._client import (
    ALLOWED_HOSTS,
    USER_AGENT,
    AllowListTransport,
    ClientConfig,
    HostRejectedError,
    URLRejectedError,
    close_client,
    configure,
    create_client,
    get_client,
    is_allowed_host,
    verify_request_url,
)
from meteorhttp.http._request import (
    FailureReason,
    Method,
    Request,
    RequestConsumedError,
    ResponseStream,
    get,
    post,
)

__all__ = [
    'ALLOWED_HOSTS',
    'USER_AGENT',
    'AllowListTransport',
    'ClientConfig',
    'HostRejectedError',
    'URLRejectedError',
    'close_client',
    'configure',
    'create_client',
    'get_client',
    'is_allowed_host',
    'verify_request_url',
    'FailureReason',
    'Method',
    'Request',
    'RequestConsumedError',
    'ResponseStream',
    'get',
    'post',
]
