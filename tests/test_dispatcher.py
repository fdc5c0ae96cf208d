"""Tests for request assembly, signing placement and transport failures."""

from __future__ import annotations

import httpx
import pytest
from conftest import TEST_BASE_URL, RecordingTransport, json_params, query_params

from bybitgw.auth import Credentials
from bybitgw.gateway.dispatcher import (
    AsyncRequestDispatcher,
    HttpMethod,
    RequestDispatcher,
    normalize_method,
)
from bybitgw.gateway.errors import ErrorKind, GatewayError, TransportError
from bybitgw.gateway.retry import RetryPolicy
from bybitgw.gateway.signer import HEADER_API_KEY, HEADER_SIGN, HEADER_TIMESTAMP, sign

FIXED_NOW = 1700000000.0
FIXED_TS = 1700000000000


class TickingClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: float = FIXED_NOW) -> None:
        self.now = start

    def __call__(self) -> float:
        value = self.now
        self.now += 1.0
        return value


class FakeSleep:
    """Records sleep calls instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeAsyncSleep(FakeSleep):
    async def __call__(self, seconds: float) -> None:  # type: ignore[override]
        self.delays.append(seconds)


def make_dispatcher(
    transport: RecordingTransport,
    credentials: Credentials | None = None,
    **kwargs: object,
) -> RequestDispatcher:
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return RequestDispatcher(
        TEST_BASE_URL,
        credentials=credentials,
        client=transport.client(),
        **kwargs,  # type: ignore[arg-type]
    )


class TestNormalizeMethod:
    """Tests for method validation."""

    def test_accepts_case_insensitive(self) -> None:
        assert normalize_method("get") is HttpMethod.GET
        assert normalize_method("POST") is HttpMethod.POST
        assert normalize_method(HttpMethod.GET) is HttpMethod.GET

    @pytest.mark.parametrize("method", ["DELETE", "PUT", ""])
    def test_rejects_others(self, method: str) -> None:
        with pytest.raises(GatewayError) as exc_info:
            normalize_method(method)
        assert exc_info.value.kind is ErrorKind.INVALID_PARAMETER


class TestRequestAssembly:
    """Tests for URL, query, body and headers."""

    def test_get_query_string(self, transport: RecordingTransport) -> None:
        dispatcher = make_dispatcher(transport)
        dispatcher.send("GET", "market/tickers", {"symbol": "BTCUSDT", "category": "spot"})

        request = transport.last
        assert request.method == "GET"
        assert str(request.url) == (
            f"{TEST_BASE_URL}/v5/market/tickers?category=spot&symbol=BTCUSDT"
        )
        assert request.content == b""
        assert HEADER_SIGN not in request.headers

    def test_get_without_params(self, transport: RecordingTransport) -> None:
        dispatcher = make_dispatcher(transport)
        dispatcher.send("GET", "market/time")
        assert str(transport.last.url) == f"{TEST_BASE_URL}/v5/market/time"

    def test_post_json_body(self, transport: RecordingTransport, credentials: Credentials) -> None:
        dispatcher = make_dispatcher(transport, credentials)
        params = {"symbol": "BTCUSDT", "category": "linear", "qty": "0.01"}
        dispatcher.send("POST", "order/create", params, needs_auth=True)

        request = transport.last
        assert request.method == "POST"
        assert request.url.query == b""
        assert request.headers["Content-Type"] == "application/json"
        assert request.content == b'{"category":"linear","qty":"0.01","symbol":"BTCUSDT"}'
        assert json_params(request) == params

    def test_signed_get_headers(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        """Signature covers exactly the parameters sent in the query."""
        dispatcher = make_dispatcher(transport, credentials)
        params = {"accountType": "UNIFIED", "coin": "USDT"}
        dispatcher.send("GET", "account/wallet-balance", params, needs_auth=True)

        request = transport.last
        assert request.headers[HEADER_API_KEY] == "test-key"
        assert request.headers[HEADER_TIMESTAMP] == str(FIXED_TS)
        assert request.headers[HEADER_SIGN] == sign(
            query_params(request), "test-key", "test-secret", FIXED_TS
        )

    def test_signed_post_headers(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        dispatcher = make_dispatcher(transport, credentials)
        params = {"category": "linear", "symbol": "BTCUSDT", "buyLeverage": "5"}
        dispatcher.send("POST", "position/set-leverage", params, needs_auth=True)

        request = transport.last
        assert request.headers[HEADER_SIGN] == sign(
            json_params(request), "test-key", "test-secret", FIXED_TS
        )

    def test_empty_credentials_still_sign(self, transport: RecordingTransport) -> None:
        dispatcher = make_dispatcher(transport)
        dispatcher.send("GET", "account/info", needs_auth=True)

        request = transport.last
        assert request.headers[HEADER_API_KEY] == ""
        assert request.headers[HEADER_SIGN] == sign({}, "", "", FIXED_TS)

    def test_base_url_trailing_slash(self, transport: RecordingTransport) -> None:
        dispatcher = RequestDispatcher(f"{TEST_BASE_URL}/", client=transport.client())
        assert dispatcher.endpoint_url("/market/kline") == f"{TEST_BASE_URL}/v5/market/kline"

    def test_per_call_timeout(self, transport: RecordingTransport) -> None:
        dispatcher = make_dispatcher(transport, timeout=10.0)
        request = dispatcher.build_request("GET", "market/time", timeout=2.0)
        assert request.extensions["timeout"]["read"] == 2.0

        request = dispatcher.build_request("GET", "market/time")
        assert request.extensions["timeout"]["read"] == 10.0
        assert request.extensions["timeout"]["connect"] == 5.0

    def test_unsupported_method_sends_nothing(self, transport: RecordingTransport) -> None:
        dispatcher = make_dispatcher(transport)
        with pytest.raises(GatewayError):
            dispatcher.send("DELETE", "order/cancel")
        assert transport.requests == []

    def test_non_string_values_signed_get(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        """Query and signature agree when callers pass raw numbers and bools."""
        dispatcher = make_dispatcher(transport, credentials)
        params = {"category": "linear", "limit": 50, "reduceOnly": True}
        dispatcher.send("GET", "position/list", params, needs_auth=True)  # type: ignore[arg-type]

        request = transport.last
        assert query_params(request) == {"category": "linear", "limit": "50", "reduceOnly": "true"}
        assert request.headers[HEADER_SIGN] == sign(
            query_params(request), "test-key", "test-secret", FIXED_TS
        )

    def test_non_string_values_signed_post(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        dispatcher = make_dispatcher(transport, credentials)
        params = {"category": "linear", "qty": 0.001, "positionIdx": 0}
        dispatcher.send("POST", "order/create", params, needs_auth=True)  # type: ignore[arg-type]

        request = transport.last
        assert json_params(request) == {"category": "linear", "positionIdx": "0", "qty": "0.001"}
        assert request.headers[HEADER_SIGN] == sign(
            json_params(request), "test-key", "test-secret", FIXED_TS
        )


class TestTransportFailures:
    """Tests for non-2xx and network errors."""

    def test_server_error_keeps_raw_body(self, transport: RecordingTransport) -> None:
        """A 500 with a non-JSON body is a transport error, never a parse error."""
        transport.queue(500, text="boom")
        dispatcher = make_dispatcher(transport)

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send("GET", "market/tickers", {"category": "spot"})

        error = exc_info.value
        assert error.kind is ErrorKind.SERVER_ERROR
        assert error.status_code == 500
        assert error.body == "boom"

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (400, ErrorKind.INVALID_PARAMETER),
            (401, ErrorKind.AUTH_FAILED),
            (403, ErrorKind.PERMISSION_DENIED),
            (429, ErrorKind.RATE_LIMITED),
            (503, ErrorKind.SERVICE_UNAVAILABLE),
            (418, ErrorKind.UNKNOWN),
        ],
    )
    def test_status_kinds(
        self, transport: RecordingTransport, status: int, kind: ErrorKind
    ) -> None:
        transport.queue(status, text="nope")
        dispatcher = make_dispatcher(transport)
        with pytest.raises(TransportError) as exc_info:
            dispatcher.send("GET", "market/time")
        assert exc_info.value.kind is kind

    def test_connect_error(self, transport: RecordingTransport) -> None:
        transport.queue_error(httpx.ConnectError("connection refused"))
        dispatcher = make_dispatcher(transport)

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send("GET", "market/time")

        error = exc_info.value
        assert error.kind is ErrorKind.REQUEST_FAILED
        assert error.status_code is None
        assert "connection refused" in error.message
        assert isinstance(error.__cause__, httpx.ConnectError)

    def test_timeout(self, transport: RecordingTransport) -> None:
        transport.queue_error(httpx.ReadTimeout("read timed out"))
        dispatcher = make_dispatcher(transport)

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send("GET", "market/time")
        assert exc_info.value.kind is ErrorKind.REQUEST_FAILED
        assert "timed out" in exc_info.value.message

    def test_success_returns_raw_bytes(self, transport: RecordingTransport) -> None:
        transport.queue(200, text="not json")
        dispatcher = make_dispatcher(transport)
        assert dispatcher.send("GET", "market/time") == b"not json"


class TestGetRetry:
    """Tests for the opt-in GET retry policy."""

    def test_no_retry_by_default(self, transport: RecordingTransport) -> None:
        transport.queue(503, text="busy")
        transport.queue(200)
        dispatcher = make_dispatcher(transport)

        with pytest.raises(TransportError):
            dispatcher.send("GET", "market/time")
        assert len(transport.requests) == 1

    def test_get_retried_and_resigned(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        """Each attempt carries a fresh timestamp and signature."""
        transport.queue(503, text="busy")
        transport.queue_error(httpx.ConnectError("reset"))
        transport.queue(200)
        sleep = FakeSleep()
        dispatcher = make_dispatcher(
            transport,
            credentials,
            retry=RetryPolicy(max_retries=3),
            clock=TickingClock(),
            sleep=sleep,
        )

        dispatcher.send("GET", "position/list", {"category": "linear"}, needs_auth=True)

        assert len(transport.requests) == 3
        assert len(sleep.delays) == 2
        timestamps = [r.headers[HEADER_TIMESTAMP] for r in transport.requests]
        signatures = [r.headers[HEADER_SIGN] for r in transport.requests]
        assert len(set(timestamps)) == 3
        assert len(set(signatures)) == 3

    def test_retries_exhausted(self, transport: RecordingTransport) -> None:
        for _ in range(3):
            transport.queue(429, text="slow down")
        dispatcher = make_dispatcher(
            transport, retry=RetryPolicy(max_retries=2), sleep=FakeSleep()
        )

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send("GET", "market/time")
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert len(transport.requests) == 3

    def test_post_never_retried(
        self, transport: RecordingTransport, credentials: Credentials
    ) -> None:
        transport.queue(503, text="busy")
        dispatcher = make_dispatcher(
            transport, credentials, retry=RetryPolicy(max_retries=3), sleep=FakeSleep()
        )

        with pytest.raises(TransportError):
            dispatcher.send("POST", "order/create", {"symbol": "BTCUSDT"}, needs_auth=True)
        assert len(transport.requests) == 1

    def test_client_errors_not_retried(self, transport: RecordingTransport) -> None:
        transport.queue(400, text="bad")
        dispatcher = make_dispatcher(
            transport, retry=RetryPolicy(max_retries=3), sleep=FakeSleep()
        )

        with pytest.raises(TransportError):
            dispatcher.send("GET", "market/time")
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_async_get_retried(self, transport: RecordingTransport) -> None:
        transport.queue(500, text="boom")
        transport.queue(200)
        sleep = FakeAsyncSleep()
        dispatcher = AsyncRequestDispatcher(
            TEST_BASE_URL,
            client=transport.async_client(),
            retry=RetryPolicy(max_retries=1),
            sleep=sleep,
        )

        body = await dispatcher.send("GET", "market/time")

        assert b'"retCode"' in body
        assert len(transport.requests) == 2
        assert len(sleep.delays) == 1
