"""Vendor response envelope.

Every V5 endpoint answers with the same wrapper::

    {"retCode": 0, "retMsg": "OK", "result": {...}, "retExtInfo": {}, "time": 1700000000000}

``result`` and ``retExtInfo`` stay untyped here; resource-level code decodes
them (see ``bybitgw.models``).
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from bybitgw.gateway.errors import ResponseInvalidError, VendorError

# Cap on raw body text kept on parse errors
_BODY_PREVIEW = 512


class Envelope(BaseModel):
    """Normalized vendor response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    code: StrictInt = Field(alias="retCode")
    message: StrictStr = Field(alias="retMsg")
    payload: Any = Field(default=None, alias="result")
    extra: Any = Field(default=None, alias="retExtInfo")
    server_time: StrictInt = Field(alias="time")

    @property
    def ok(self) -> bool:
        """True when the vendor reported success."""
        return self.code == 0

    def raise_for_code(self) -> Envelope:
        """Raise ``VendorError`` unless the vendor reported success.

        Returns:
            self, to allow chaining
        """
        if self.code != 0:
            raise VendorError(self)
        return self

    def to_wire(self) -> dict[str, Any]:
        """Dump with the vendor's field names."""
        return self.model_dump(by_alias=True)


def parse_envelope(raw: bytes | str) -> Envelope:
    """Parse a raw response body into an Envelope.

    Args:
        raw: Response body

    Returns:
        Parsed envelope (any ``retCode``)

    Raises:
        ResponseInvalidError: If the body is not JSON, not an object, or
            lacks ``retCode``/``retMsg``/``time``
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    preview = text[:_BODY_PREVIEW]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseInvalidError(f"Response is not JSON: {e.msg}", body=preview) from e

    if not isinstance(data, dict):
        raise ResponseInvalidError(
            f"Response is a JSON {type(data).__name__}, expected object", body=preview
        )

    try:
        return Envelope.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ResponseInvalidError(f"Malformed envelope fields: {fields}", body=preview) from e
