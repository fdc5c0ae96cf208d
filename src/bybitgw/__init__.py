"""Bybit Gateway - signed request gateway for the Bybit V5 REST API."""

__version__ = "0.1.0"
