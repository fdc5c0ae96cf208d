"""Shared fixtures: a recording mock transport and envelope builders."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from bybitgw.auth import Credentials
from bybitgw.config import reset_settings

SERVER_TIME = 1700000000000
TEST_BASE_URL = "https://api.test.local"


def envelope_body(
    result: Any = None,
    code: int = 0,
    message: str = "OK",
) -> dict[str, Any]:
    """Build a vendor envelope as the server would send it."""
    return {
        "retCode": code,
        "retMsg": message,
        "result": {} if result is None else result,
        "retExtInfo": {},
        "time": SERVER_TIME,
    }


class RecordingTransport:
    """Mock transport that records requests and replays queued responses.

    With an empty queue every request gets a successful empty envelope.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | Exception] = []
        self.handler: Callable[[httpx.Request], httpx.Response] | None = None

    def queue(self, status: int = 200, json_body: Any = None, text: str | None = None) -> None:
        if text is not None:
            self.responses.append(httpx.Response(status, text=text))
        else:
            body = envelope_body() if json_body is None else json_body
            self.responses.append(httpx.Response(status, json=body))

    def queue_error(self, exc: Exception) -> None:
        self.responses.append(exc)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        if not self.responses:
            return httpx.Response(200, json=envelope_body())
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def query_params(request: httpx.Request) -> dict[str, str]:
    return dict(request.url.params)


def json_params(request: httpx.Request) -> dict[str, str]:
    return json.loads(request.content)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(api_key="test-key", api_secret="test-secret")


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep global settings, logging handlers and vendor env vars out of each test."""
    for name in ("BYBIT_API_KEY", "BYBIT_API_SECRET", "BYBIT_BASE_URL", "BYBIT_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    gateway_logger = logging.getLogger("bybitgw")
    handlers, level = list(gateway_logger.handlers), gateway_logger.level
    reset_settings()
    yield
    reset_settings()
    gateway_logger.handlers[:] = handlers
    gateway_logger.setLevel(level)
