"""API credentials bound to a gateway.

DESIGN PRINCIPLES:
- Immutable: credentials are fixed when the gateway is built
- Safe by default: the secret never appears in repr() or logs
- Environment friendly: BYBIT_API_KEY / BYBIT_API_SECRET

USAGE:
    creds = Credentials.from_env()
    logger.info(f"Using key {creds.masked_api_key()}")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bybitgw.auth.redact import mask_string

if TYPE_CHECKING:
    from bybitgw.config import BybitConfig

ENV_API_KEY = "BYBIT_API_KEY"
ENV_API_SECRET = "BYBIT_API_SECRET"


@dataclass(frozen=True)
class Credentials:
    """Bybit API credentials.

    Attributes:
        api_key: API key sent in the ``X-BAPI-API-KEY`` header
        api_secret: HMAC secret used to sign requests (never sent)
    """

    api_key: str = ""
    api_secret: str = field(default="", repr=False)

    @property
    def is_complete(self) -> bool:
        """Check that both key and secret are set."""
        return bool(self.api_key) and bool(self.api_secret)

    def masked_api_key(self) -> str:
        """Return masked API key showing first and last 4 characters.

        Example: "abc1...xyz9"
        """
        if not self.api_key:
            return "<unset>"
        return mask_string(self.api_key, visible_chars=4)

    @classmethod
    def from_env(cls) -> Credentials:
        """Load credentials from BYBIT_API_KEY and BYBIT_API_SECRET.

        Missing variables yield empty strings; public endpoints still work.
        """
        return cls(
            api_key=os.environ.get(ENV_API_KEY, ""),
            api_secret=os.environ.get(ENV_API_SECRET, ""),
        )

    @classmethod
    def from_config(cls, config: BybitConfig) -> Credentials:
        """Build credentials from the ``bybit`` configuration section."""
        return cls(
            api_key=config.api_key,
            api_secret=config.api_secret.get_secret_value(),
        )
