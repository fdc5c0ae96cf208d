"""HTTP request dispatch for the V5 REST API.

Builds one request per call:

- GET: parameters percent-encoded into the query string, empty body
- POST: parameters as a JSON object body, empty query string

Authenticated requests are signed over exactly the parameters being sent,
after they are final, and carry ``X-BAPI-API-KEY``, ``X-BAPI-TIMESTAMP`` and
``X-BAPI-SIGN``.

The dispatcher returns raw body bytes for 2xx responses and raises
``TransportError`` otherwise. It never parses the body.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum

import httpx

from bybitgw.auth.creds import Credentials
from bybitgw.auth.redact import redact_secrets, safe_dict_for_logging
from bybitgw.gateway.errors import ErrorKind, GatewayError, TransportError
from bybitgw.gateway.params import encode_body, encode_query, format_value
from bybitgw.gateway.retry import NO_RETRY, RetryPolicy, compute_backoff, is_retryable
from bybitgw.gateway.signer import auth_headers, timestamp_ms
from bybitgw.logging import LoggerProtocol, get_logger

API_VERSION = "v5"

DEFAULT_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 5.0

# Cap on response text kept in debug logs
_LOG_PREVIEW = 300


class HttpMethod(str, Enum):
    """Methods accepted by the vendor API."""

    GET = "GET"
    POST = "POST"


def normalize_method(method: str | HttpMethod) -> HttpMethod:
    """Validate an HTTP method name.

    Raises:
        GatewayError: With kind InvalidParameter for anything but GET/POST
    """
    if isinstance(method, HttpMethod):
        return method
    try:
        return HttpMethod(str(method).upper())
    except ValueError:
        raise GatewayError(
            ErrorKind.INVALID_PARAMETER, f"Unsupported HTTP method: {method!r}"
        ) from None


class _DispatcherBase:
    """Request assembly and response checks shared by sync and async dispatchers."""

    def __init__(
        self,
        base_url: str,
        credentials: Credentials | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry: RetryPolicy | None = None,
        logger: LoggerProtocol | None = None,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize dispatcher.

        Args:
            base_url: API base URL (e.g. https://api.bybit.com)
            credentials: API credentials (empty ones give degenerate signatures)
            timeout: Default request timeout in seconds
            retry: GET retry policy (defaults to no retry)
            logger: Logging collaborator
            debug: Log request parameters and response previews
            clock: Wall clock used for signing timestamps
        """
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials or Credentials()
        self._timeout = timeout
        self._retry = retry or NO_RETRY
        self._logger = logger or get_logger("gateway.dispatcher")
        self._debug = debug
        self._clock = clock

    @property
    def base_url(self) -> str:
        return self._base_url

    def endpoint_url(self, endpoint: str) -> str:
        """Full URL for an endpoint path like ``market/tickers``."""
        return f"{self._base_url}/{API_VERSION}/{endpoint.strip('/')}"

    def _http_timeout(self, timeout: float | None) -> httpx.Timeout:
        seconds = self._timeout if timeout is None else timeout
        return httpx.Timeout(seconds, connect=min(seconds, DEFAULT_CONNECT_TIMEOUT))

    def _assemble(
        self,
        method: HttpMethod,
        endpoint: str,
        params: Mapping[str, str],
        needs_auth: bool,
    ) -> tuple[str, bytes | None, dict[str, str]]:
        """Build URL, body and headers; signs last.

        Values are rendered once with ``format_value`` so the query, the body
        and the signature all see the same strings.
        """
        params = {key: format_value(value) for key, value in params.items()}
        url = self.endpoint_url(endpoint)
        headers: dict[str, str] = {}
        content: bytes | None = None

        if method is HttpMethod.GET:
            if params:
                url = f"{url}?{encode_query(params)}"
        else:
            content = encode_body(params)
            headers["Content-Type"] = "application/json"

        if needs_auth:
            headers.update(auth_headers(self._credentials, params, timestamp_ms(self._clock)))

        if self._debug:
            self._logger.debug(
                f"{method.value} {endpoint}",
                extra={"params": safe_dict_for_logging(params), "auth": needs_auth},
            )

        return url, content, headers

    def _check_response(self, endpoint: str, response: httpx.Response) -> bytes:
        """Return the body of a 2xx response or raise ``TransportError``."""
        if self._debug:
            self._logger.debug(
                f"{endpoint} -> HTTP {response.status_code}: "
                f"{redact_secrets(response.text)[:_LOG_PREVIEW]}"
            )

        if not response.is_success:
            raise TransportError.from_status(response.status_code, response.text)
        return response.content

    def _request_failure(self, endpoint: str, exc: httpx.RequestError) -> TransportError:
        if isinstance(exc, httpx.TimeoutException):
            message = f"Request to {endpoint} timed out"
        else:
            detail = redact_secrets(str(exc)) or type(exc).__name__
            message = f"Request to {endpoint} failed: {detail}"
        return TransportError(ErrorKind.REQUEST_FAILED, message)

    def _should_retry(self, method: HttpMethod, error: TransportError, attempt: int) -> bool:
        return (
            method is HttpMethod.GET
            and attempt < self._retry.max_retries
            and is_retryable(error)
        )

    def _backoff(self, attempt: int) -> float:
        return compute_backoff(
            attempt,
            base=self._retry.backoff_base,
            max_delay=self._retry.backoff_max,
            jitter_factor=self._retry.jitter_factor,
        )


class RequestDispatcher(_DispatcherBase):
    """Blocking dispatcher over ``httpx.Client``.

    Safe to share between threads: nothing is mutated after construction.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
        retry: RetryPolicy | None = None,
        logger: LoggerProtocol | None = None,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(base_url, credentials, timeout, retry, logger, debug, clock)
        self._owns_client = client is None
        self._client = client or httpx.Client(headers={"Accept": "application/json"})
        self._sleep = sleep

    def build_request(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> httpx.Request:
        """Build (and sign) the request without sending it."""
        http_method = normalize_method(method)
        url, content, headers = self._assemble(http_method, endpoint, params or {}, needs_auth)
        return self._client.build_request(
            http_method.value,
            url,
            content=content,
            headers=headers,
            timeout=self._http_timeout(timeout),
        )

    def send(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> bytes:
        """Send one request and return the raw response body.

        Raises:
            TransportError: On network failure, timeout or non-2xx status
            GatewayError: On an unsupported method
        """
        http_method = normalize_method(method)
        attempt = 0
        while True:
            request = self.build_request(http_method, endpoint, params, needs_auth, timeout)
            try:
                try:
                    response = self._client.send(request)
                except httpx.RequestError as e:
                    raise self._request_failure(endpoint, e) from e
                return self._check_response(endpoint, response)
            except TransportError as e:
                if not self._should_retry(http_method, e, attempt):
                    raise
                delay = self._backoff(attempt)
                self._logger.debug(
                    f"Retrying GET {endpoint} after {e.kind.value} in {delay:.2f}s"
                )
                attempt += 1
                self._sleep(delay)

    def close(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._owns_client:
            self._client.close()


class AsyncRequestDispatcher(_DispatcherBase):
    """Cooperative dispatcher over ``httpx.AsyncClient``.

    Cancelling the awaiting task aborts the in-flight request; the
    cancellation propagates unchanged.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        logger: LoggerProtocol | None = None,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(base_url, credentials, timeout, retry, logger, debug, clock)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers={"Accept": "application/json"})
        self._sleep = sleep

    def build_request(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> httpx.Request:
        """Build (and sign) the request without sending it."""
        http_method = normalize_method(method)
        url, content, headers = self._assemble(http_method, endpoint, params or {}, needs_auth)
        return self._client.build_request(
            http_method.value,
            url,
            content=content,
            headers=headers,
            timeout=self._http_timeout(timeout),
        )

    async def send(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> bytes:
        """Send one request and return the raw response body.

        Raises:
            TransportError: On network failure, timeout or non-2xx status
            GatewayError: On an unsupported method
        """
        http_method = normalize_method(method)
        attempt = 0
        while True:
            request = self.build_request(http_method, endpoint, params, needs_auth, timeout)
            try:
                try:
                    response = await self._client.send(request)
                except httpx.RequestError as e:
                    raise self._request_failure(endpoint, e) from e
                return self._check_response(endpoint, response)
            except TransportError as e:
                if not self._should_retry(http_method, e, attempt):
                    raise
                delay = self._backoff(attempt)
                self._logger.debug(
                    f"Retrying GET {endpoint} after {e.kind.value} in {delay:.2f}s"
                )
                attempt += 1
                await self._sleep(delay)

    async def aclose(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._owns_client:
            await self._client.aclose()
