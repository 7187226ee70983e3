"""orjson wrapper returning str instead of bytes."""

from typing import Any

import orjson


def dumps(obj: Any) -> str:
    """Serialize to a compact JSON string."""
    return orjson.dumps(obj).decode("utf-8")


def dumps_pretty(obj: Any) -> str:
    """Serialize with two-space indentation."""
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2).decode("utf-8")


def dumps_bytes(obj: Any) -> bytes:
    """Serialize straight to bytes for wire writes."""
    return orjson.dumps(obj)


def loads(data: str | bytes) -> Any:
    """Parse JSON text or bytes."""
    return orjson.loads(data)


JSONDecodeError = orjson.JSONDecodeError
