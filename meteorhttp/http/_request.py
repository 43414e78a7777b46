'''
The fluent request builder. A `Request` is created with `get()` or `post()`,
configured through chained calls and consumed by exactly one terminal send.
Terminal sends never raise for network problems, they return None and record
the reason on `Request.failure`.
'''
import enum
import logging
import typing
from collections.abc import Iterator
from typing import Any, Self, TypeVar

import httpx

from meteorhttp import json_codec
from meteorhttp.http._client import (
    USER_AGENT,
    URLRejectedError,
    get_client,
    is_allowed_host,
    verify_request_url,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Method(enum.StrEnum):
    GET = 'GET'
    POST = 'POST'


class FailureReason(enum.StrEnum):
    '''
    Why a terminal send returned None.
    '''
    DISALLOWED_HOST = 'disallowed_host'
    BAD_STATUS = 'bad_status'
    TRANSPORT_ERROR = 'transport_error'
    DECODE_ERROR = 'decode_error'


class RequestConsumedError(RuntimeError):
    '''
    Raised when a terminal send is called on a request that was already sent.

    Parent: RuntimeError
    '''


class ResponseStream(typing.Generic[T]):
    '''
    Single pass iterator over a streamed response body. It owns the
    response and closes it when exhausted, when `close()` is called, when
    used as a context manager or when garbage collected, whether or not
    iteration ever started.

    A transport error part way through ends the iteration, is logged and
    recorded on the originating request's `failure`.
    '''
    __slots__ = ('_request', '_response', '_chunks', '_done')

    def __init__(
        self,
        request: 'Request',
        response: httpx.Response,
        chunks: Iterator[T],
    ) -> None:
        self._request = request
        self._response = response
        self._chunks = chunks
        self._done = False

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> T:
        if self._done:
            raise StopIteration

        try:
            return next(self._chunks)
        except StopIteration:
            self.close()
            raise
        except httpx.HTTPError as exc:
            logger.error(f'Response stream from {self._request.host} broke: {exc}')
            self._request.failure = FailureReason.TRANSPORT_ERROR
            self.close()
            raise StopIteration from None

    @property
    def closed(self) -> bool:
        return self._done

    def close(self) -> None:
        self._done = True
        self._response.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        response = getattr(self, '_response', None)
        if response is not None and not response.is_closed:
            response.close()


class Request:
    __slots__ = (
        'method',
        'url',
        'headers',
        'failure',
        'status_code',
        '_content',
        '_body_bound',
        '_sent',
    )

    def __init__(self, method: Method | str, url: str) -> None:
        '''
        Parameters
        ----------
        method : Method | str
            GET or POST
        url : str
            An absolute http(s) URL

        Raises
        ------
        URLRejectedError
            If the URL is malformed.
        '''
        try:
            self.url: httpx.URL = verify_request_url(url)
        except URLRejectedError as exc:
            logger.error(f'Could not build {method} request: {exc}')
            raise

        self.method: Method = Method(method)
        self.headers: httpx.Headers = httpx.Headers({'User-Agent': USER_AGENT})
        self.failure: FailureReason | None = None
        self.status_code: int | None = None
        self._content: bytes = b''
        self._body_bound: bool = False
        self._sent: bool = False

    def __repr__(self) -> str:
        return f'<Request [{self.method} {self.url}]>'

    @property
    def host(self) -> str:
        return self.url.host

    def bearer(self, token: str) -> Self:
        self.headers['Authorization'] = f'Bearer {token}'
        return self

    def _bind_body(self, content_type: str, body: str) -> Self:
        self.headers['Content-Type'] = content_type
        self._content = body.encode('utf-8')
        self._body_bound = True
        return self

    def body_string(self, body: str) -> Self:
        return self._bind_body('text/plain', body)

    def body_form(self, body: str) -> Self:
        '''
        Attach an already encoded form body (`a=1&b=2`).
        '''
        return self._bind_body('application/x-www-form-urlencoded', body)

    def body_json(self, value: Any) -> Self:
        '''
        Attach a JSON body. Strings are sent verbatim, anything else is
        serialized with `json_codec.dumps`.

        Parameters
        ----------
        value : Any
            JSON text or a JSON serializable object / dataclass

        Returns
        -------
        Self
        '''
        if not isinstance(value, str):
            value = json_codec.dumps(value)
        return self._bind_body('application/json', value)

    def _fail(self, reason: FailureReason) -> None:
        self.failure = reason
        return None

    def _send(self, accept: str, *, stream: bool = False) -> httpx.Response | None:
        if self._sent:
            raise RequestConsumedError(f'{self!r} has already been sent')
        self._sent = True

        self.headers['Accept'] = accept
        if not self._body_bound:
            self._content = b''
            self._body_bound = True

        host = self.url.host
        logger.info(f'Making request to {host}!')

        if not is_allowed_host(host):
            logger.warning(f'Refusing request to {host}, host is not allowed')
            return self._fail(FailureReason.DISALLOWED_HOST)

        client = get_client()
        request = client.build_request(
            self.method,
            self.url,
            headers=self.headers,
            content=self._content,
        )

        try:
            response = client.send(request, stream=stream)
        except httpx.HTTPError as exc:
            logger.error(f'{self.method} request to {host} failed: {exc}')
            return self._fail(FailureReason.TRANSPORT_ERROR)

        self.status_code = response.status_code
        if response.status_code != 200:
            response.close()
            logger.debug(f'{self.method} {self.url} returned {response.status_code}')
            return self._fail(FailureReason.BAD_STATUS)

        return response

    def send(self) -> None:
        '''
        Send the request and discard the response body.
        '''
        self._send('*/*')

    def send_bytes(self) -> 'ResponseStream[bytes] | None':
        '''
        Send the request and stream the raw response body.

        Returns
        -------
        ResponseStream[bytes] | None
            Byte chunks, the response is closed once the stream is
            exhausted, closed or garbage collected.
        '''
        response = self._send('*/*', stream=True)
        if response is None:
            return None
        return ResponseStream(self, response, response.iter_bytes())

    def send_string(self) -> str | None:
        response = self._send('*/*')
        if response is None:
            return None
        return response.text

    def send_lines(self) -> 'ResponseStream[str] | None':
        '''
        Send the request and lazily read the response body line by line.
        Lines are yielded without their terminators and can only be
        iterated once.

        Returns
        -------
        ResponseStream[str] | None
        '''
        response = self._send('*/*', stream=True)
        if response is None:
            return None
        return ResponseStream(self, response, response.iter_lines())

    @typing.overload
    def send_json(self) -> Any: ...
    @typing.overload
    def send_json(self, target: type[T]) -> T | None: ...
    def send_json(self, target=None):
        '''
        Send the request and decode the JSON response into `target`.

        Parameters
        ----------
        target : type, optional
            A dataclass, `list[...]`, `dict[str, ...]` or primitive type,
            by default None which returns the plain decoded JSON

        Returns
        -------
        The decoded value, or None when there was no response, no body or
        the body did not decode.
        '''
        response = self._send('application/json')
        if response is None:
            return None

        if not response.content.strip():
            return None

        try:
            return json_codec.loads(response.content, target)
        except json_codec.JSONDecodeFailure as exc:
            logger.error(f'Could not decode response from {self.url.host}: {exc}')
            return self._fail(FailureReason.DECODE_ERROR)


def get(url: str) -> Request:
    return Request(Method.GET, url)


def post(url: str) -> Request:
    return Request(Method.POST, url)
