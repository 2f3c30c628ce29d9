from __future__ import annotations

import json
from typing import Any, Optional


class ServiceHTTPError(RuntimeError):
    """A remote call failed, optionally carrying the HTTP status and decoded body."""

    def __init__(self, message: str, *, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (HTTP {self.status}): {self.payload!r}"


def decode_payload(raw: bytes) -> Any:
    """JSON body if it parses, the text otherwise, None when empty."""

    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return raw.decode("utf-8", errors="replace")
