from __future__ import annotations

from typing import Any


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Success envelope shared by every endpoint: ``{success, data, message}``."""
    return {"success": True, "data": data, "message": message}
