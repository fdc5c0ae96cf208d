"""Signed request gateway.

The single choke point between resource methods and the vendor API::

    gateway = Gateway(credentials=Credentials.from_env())
    envelope = gateway.execute("GET", "market/tickers", {"category": "spot"})

``execute`` dispatches, parses the envelope and raises ``VendorError`` for
any non-zero ``retCode``. Transport and parse failures surface as
``TransportError`` and ``ResponseInvalidError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx

from bybitgw.auth.creds import Credentials
from bybitgw.config import DEFAULT_BASE_URL
from bybitgw.gateway.dispatcher import (
    DEFAULT_TIMEOUT,
    AsyncRequestDispatcher,
    HttpMethod,
    RequestDispatcher,
    normalize_method,
)
from bybitgw.gateway.envelope import Envelope, parse_envelope
from bybitgw.gateway.errors import GatewayError, VendorError
from bybitgw.gateway.retry import RetryPolicy
from bybitgw.logging import LoggerProtocol, get_logger

if TYPE_CHECKING:
    from bybitgw.config import BybitConfig


def _retry_from_config(config: BybitConfig) -> RetryPolicy:
    return RetryPolicy(max_retries=config.get_retries)


class _GatewayBase:
    """State shared by the sync and async gateways."""

    def __init__(
        self,
        credentials: Credentials | None,
        base_url: str,
        logger: LoggerProtocol | None,
    ) -> None:
        self._credentials = credentials or Credentials()
        self._base_url = base_url.rstrip("/")
        self._logger = logger or get_logger("gateway")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def _finish(self, method: HttpMethod, endpoint: str, raw: bytes) -> Envelope:
        """Parse the body and enforce the vendor return code."""
        envelope = parse_envelope(raw)
        if not envelope.ok:
            error = VendorError(envelope)
            self._logger.warning(
                f"{method.value} {endpoint} rejected: {error}",
                extra={"vendor_code": envelope.code, "kind": error.kind.value},
            )
            raise error
        return envelope

    def _log_failure(self, method: HttpMethod, endpoint: str, error: GatewayError) -> None:
        self._logger.error(
            f"{method.value} {endpoint} failed: {error}",
            extra={"kind": error.kind.value, "status_code": error.status_code},
        )


class Gateway(_GatewayBase):
    """Blocking gateway.

    Credentials, base URL and HTTP client are fixed at construction, so one
    instance can serve many threads at once.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        logger: LoggerProtocol | None = None,
        http_client: httpx.Client | None = None,
        retry: RetryPolicy | None = None,
        debug: bool = False,
    ) -> None:
        """Initialize gateway.

        Args:
            credentials: API credentials (public endpoints work without)
            base_url: API base URL
            timeout: Default per-request timeout in seconds
            logger: Logging collaborator (defaults to ``bybitgw.gateway``)
            http_client: Pre-built HTTP client (e.g. with a mock transport)
            retry: Opt-in GET retry policy
            debug: Log request/response details (secrets redacted)
        """
        super().__init__(credentials, base_url, logger)
        self._dispatcher = RequestDispatcher(
            self._base_url,
            credentials=self._credentials,
            timeout=timeout,
            client=http_client,
            retry=retry,
            logger=self._logger,
            debug=debug,
        )

    @classmethod
    def from_config(
        cls,
        config: BybitConfig,
        logger: LoggerProtocol | None = None,
        http_client: httpx.Client | None = None,
    ) -> Gateway:
        """Build a gateway from the ``bybit`` configuration section."""
        return cls(
            credentials=Credentials.from_config(config),
            base_url=config.base_url,
            timeout=config.timeout,
            logger=logger,
            http_client=http_client,
            retry=_retry_from_config(config),
            debug=config.debug,
        )

    def execute(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> Envelope:
        """Send a request and return the vendor envelope.

        Args:
            method: GET or POST
            endpoint: Path below ``/v5/`` (e.g. ``order/create``)
            params: ParamSet to send
            needs_auth: Sign the request
            timeout: Override the default timeout for this call

        Returns:
            Envelope with ``code == 0``

        Raises:
            TransportError: Network failure, timeout or non-2xx status
            ResponseInvalidError: Body is not a valid envelope
            VendorError: Vendor returned a non-zero code
        """
        http_method = normalize_method(method)
        try:
            raw = self._dispatcher.send(http_method, endpoint, params, needs_auth, timeout)
            return self._finish(http_method, endpoint, raw)
        except VendorError:
            raise
        except GatewayError as e:
            self._log_failure(http_method, endpoint, e)
            raise

    def get(
        self,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        **kwargs: Any,
    ) -> Envelope:
        """Shortcut for ``execute("GET", ...)``."""
        return self.execute(HttpMethod.GET, endpoint, params, needs_auth, **kwargs)

    def post(
        self,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = True,
        **kwargs: Any,
    ) -> Envelope:
        """Shortcut for ``execute("POST", ...)``; signed by default."""
        return self.execute(HttpMethod.POST, endpoint, params, needs_auth, **kwargs)

    def close(self) -> None:
        """Release the HTTP client if the gateway created it."""
        self._dispatcher.close()

    def __enter__(self) -> Gateway:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class AsyncGateway(_GatewayBase):
    """Cooperative gateway with the same contract as ``Gateway``."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        logger: LoggerProtocol | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        debug: bool = False,
    ) -> None:
        super().__init__(credentials, base_url, logger)
        self._dispatcher = AsyncRequestDispatcher(
            self._base_url,
            credentials=self._credentials,
            timeout=timeout,
            client=http_client,
            retry=retry,
            logger=self._logger,
            debug=debug,
        )

    @classmethod
    def from_config(
        cls,
        config: BybitConfig,
        logger: LoggerProtocol | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> AsyncGateway:
        """Build a gateway from the ``bybit`` configuration section."""
        return cls(
            credentials=Credentials.from_config(config),
            base_url=config.base_url,
            timeout=config.timeout,
            logger=logger,
            http_client=http_client,
            retry=_retry_from_config(config),
            debug=config.debug,
        )

    async def execute(
        self,
        method: str | HttpMethod,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        timeout: float | None = None,
    ) -> Envelope:
        """Send a request and return the vendor envelope.

        See ``Gateway.execute``. Task cancellation propagates as
        ``asyncio.CancelledError``.
        """
        http_method = normalize_method(method)
        try:
            raw = await self._dispatcher.send(http_method, endpoint, params, needs_auth, timeout)
            return self._finish(http_method, endpoint, raw)
        except VendorError:
            raise
        except GatewayError as e:
            self._log_failure(http_method, endpoint, e)
            raise

    async def get(
        self,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = False,
        **kwargs: Any,
    ) -> Envelope:
        """Shortcut for ``execute("GET", ...)``."""
        return await self.execute(HttpMethod.GET, endpoint, params, needs_auth, **kwargs)

    async def post(
        self,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        needs_auth: bool = True,
        **kwargs: Any,
    ) -> Envelope:
        """Shortcut for ``execute("POST", ...)``; signed by default."""
        return await self.execute(HttpMethod.POST, endpoint, params, needs_auth, **kwargs)

    async def aclose(self) -> None:
        """Release the HTTP client if the gateway created it."""
        await self._dispatcher.aclose()

    async def __aenter__(self) -> AsyncGateway:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
