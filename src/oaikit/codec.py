"""
JSON decoding into caller-supplied target types.

Targets are anything pydantic can validate: models, dataclasses, TypedDicts,
``dict``/``list`` and so on. ``bytes`` means "return the raw body".
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def type_adapter(target: Any) -> TypeAdapter[Any]:
    """Cached TypeAdapter for a target; unhashable targets are not cached."""
    try:
        return _adapter(target)
    except TypeError:
        return TypeAdapter(target)


def decode_json(target: type[T] | Any, content: bytes | str) -> T:
    """Decode JSON content into the target type.

    Raises:
        ValueError: If the content is not valid JSON for the target
            (pydantic's ValidationError is a ValueError)
    """
    if target is bytes:
        return content if isinstance(content, bytes) else content.encode("utf-8")  # type: ignore[return-value]
    return type_adapter(target).validate_json(content)


def decode_tagged(
    content: bytes | str,
    variants: Mapping[str, Any],
    *,
    tag: str = "type",
    default: Any | None = None,
) -> Any:
    """Two-step decode of a tagged union.

    Reads only the discriminant field first, then validates the whole
    payload against the variant registered for it. Payloads with an
    unregistered tag are validated against ``default``.

    Args:
        content: JSON payload
        variants: Tag value -> target type
        tag: Name of the discriminant field
        default: Target for unknown tags (None = unknown tags are an error)

    Returns:
        Decoded value

    Raises:
        ValueError: If the payload is malformed, the tag is missing, or the
            tag is unknown and there is no default
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("tagged payload must be a JSON object")

    discriminant = data.get(tag)
    if not isinstance(discriminant, str):
        raise ValueError(f"tagged payload has no string '{tag}' field")

    target = variants.get(discriminant, default)
    if target is None:
        raise ValueError(f"unknown {tag}: {discriminant}")
    return type_adapter(target).validate_python(data)


__all__ = ["ValidationError", "decode_json", "decode_tagged", "type_adapter"]
