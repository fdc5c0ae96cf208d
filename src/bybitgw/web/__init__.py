"""Web service for the gateway."""

from bybitgw.web.app import create_app

__all__ = ["create_app"]
