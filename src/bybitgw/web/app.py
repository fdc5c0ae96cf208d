"""FastAPI application exposing the gateway as a service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bybitgw import __version__
from bybitgw.api import BybitClient
from bybitgw.config import Settings, get_settings
from bybitgw.web.routes import router


def create_app(client: BybitClient | None = None, settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        client: Pre-built client (tests); built from settings when omitted
        settings: Settings used to build the client

    Returns:
        Configured FastAPI app instance
    """
    owns_client = client is None
    if client is None:
        client = BybitClient.from_settings(settings or get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_client:
            app.state.client.close()

    app = FastAPI(
        title="Bybit Gateway",
        description="Signed Bybit V5 REST gateway",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.client = client

    app.include_router(router)

    return app
