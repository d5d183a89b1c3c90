"""Recursive key conversion between the camelCase wire format and snake_case columns."""

import re
from collections.abc import Callable
from typing import Any

_SNAKE_SEGMENT = re.compile(r"_([a-z])")
_UPPER = re.compile(r"[A-Z]")


def snake_to_camel_key(key: str) -> str:
    return _SNAKE_SEGMENT.sub(lambda m: m.group(1).upper(), key)


def camel_to_snake_key(key: str) -> str:
    return _UPPER.sub(lambda m: f"_{m.group(0).lower()}", key)


def _remap(value: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(value, dict):
        return {
            (convert(k) if isinstance(k, str) else k): _remap(v, convert)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_remap(item, convert) for item in value]
    return value


def to_camel(value: Any) -> Any:
    """Rename every dict key under ``value`` from snake_case to camelCase."""
    return _remap(value, snake_to_camel_key)


def to_snake(value: Any) -> Any:
    """Rename every dict key under ``value`` from camelCase to snake_case."""
    return _remap(value, camel_to_snake_key)
