import threading
import dataclasses as dc
import logging

import httpx


logger = logging.getLogger(__name__)


ALLOWED_HOSTS: frozenset[str] = frozenset({
    'login.live.com',
    'user.auth.xboxlive.com',
    'xsts.auth.xboxlive.com',
    'api.minecraftservices.com',
    'api.mojang.com',
    'sessionserver.mojang.com',
})

USER_AGENT = 'Meteor Client'


class URLRejectedError(ValueError):
    '''
    Raised when a request URL cannot be parsed or has no usable host.

    Parent: ValueError
    '''


class HostRejectedError(httpx.TransportError):
    '''
    Raised by `AllowListTransport` when a request targets a host outside
    of `ALLOWED_HOSTS`.

    Parent: httpx.TransportError
    '''


def is_allowed_host(host: str | None) -> bool:
    '''
    Check the host against the allow-list, exact match only.

    Parameters
    ----------
    host : str | None

    Returns
    -------
    bool
    '''
    return host is not None and host in ALLOWED_HOSTS


def verify_request_url(url: str) -> httpx.URL:
    '''
    Parses a request URL and makes sure it is an absolute http(s) URL
    with a host.

    Parameters
    ----------
    url : str

    Returns
    -------
    httpx.URL

    Raises
    ------
    URLRejectedError
        If the URL is malformed, uses an unsupported scheme or has no host.
    '''
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise URLRejectedError(f'Malformed URL {url!r}: {exc}') from exc

    if parsed.scheme not in ('http', 'https'):
        raise URLRejectedError(f'Rejected unsupported URL scheme: {parsed.scheme!r}')

    if not parsed.host:
        raise URLRejectedError(f'Rejected URL without a host: {url!r}')

    return parsed


class AllowListTransport(httpx.BaseTransport):
    '''
    Transport wrapper that refuses to forward requests to hosts outside
    of the allow-list, so redirects cannot escape it either.
    '''
    def __init__(
        self,
        inner: httpx.BaseTransport | None = None,
        *,
        http2: bool = False,
        trust_env: bool = False,
    ) -> None:
        self._inner: httpx.BaseTransport = inner or httpx.HTTPTransport(
            http2=http2,
            trust_env=trust_env,
        )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if not is_allowed_host(request.url.host):
            raise HostRejectedError(
                f'Rejected request to {request.url.host!r}',
                request=request,
            )
        return self._inner.handle_request(request)

    def close(self) -> None:
        self._inner.close()


@dc.dataclass(slots=True)
class ClientConfig:
    '''
    Configuration options for the shared HTTP client. Timeouts and
    connection limits are left at the httpx defaults.
    '''
    http2: bool = False
    follow_redirects: bool = False
    trust_env: bool = False
    transport: httpx.BaseTransport | None = None


def create_client(config: ClientConfig | None = None) -> httpx.Client:
    config = config or ClientConfig()
    return httpx.Client(
        transport=AllowListTransport(
            config.transport,
            http2=config.http2,
            trust_env=config.trust_env,
        ),
        headers={'User-Agent': USER_AGENT},
        follow_redirects=config.follow_redirects,
    )


_lock = threading.Lock()
_client: httpx.Client | None = None
_config: ClientConfig | None = None


def get_client() -> httpx.Client:
    '''
    Get the process wide client, creating it on first use.

    Returns
    -------
    httpx.Client
    '''
    global _client
    with _lock:
        if _client is None:
            _client = create_client(_config)
        return _client


def configure(config: ClientConfig | None = None) -> httpx.Client:
    '''
    Replace the shared client with one built from `config`, closing
    the previous client if there was one.

    Parameters
    ----------
    config : ClientConfig | None, optional
        The new configuration, by default the stock `ClientConfig()`

    Returns
    -------
    httpx.Client
        The new shared client.
    '''
    global _client, _config
    with _lock:
        previous = _client
        _config = config
        client = _client = create_client(config)

    if previous is not None:
        previous.close()
    logger.debug(f'Shared HTTP client reconfigured: {config}')
    return client


def close_client() -> None:
    global _client
    with _lock:
        previous, _client = _client, None

    if previous is not None:
        previous.close()
