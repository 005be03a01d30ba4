"""
Encoding helpers for serialized metadata values.

Stored containers are either PHP-serialized (the WordPress default) or JSON
text; anything else is plain text. Decoding never raises: text that does not
parse, or nests too deeply to parse, is its own decoded value. Repaired
values are written back in the format they were read in.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

import phpserialize

PHP = "php"
JSON = "json"
TEXT = "text"

_PHP_SERIALIZED = re.compile(r"^(?:N;|b:[01];|[id]:[^;]+;|s:\d+:\".*\";|a:\d+:\{.*\}|[OC]:\d+:\".*[;}])$", re.DOTALL)


def is_php_serialized(text: str) -> bool:
    """Return True when text looks like PHP ``serialize()`` output."""
    return bool(_PHP_SERIALIZED.match(text.strip()))


def looks_serialized(text: str) -> bool:
    """Return True when text is shaped like an encoded JSON container."""
    stripped = text.strip()
    if len(stripped) < 2:
        return False
    return (stripped[0], stripped[-1]) in {("{", "}"), ("[", "]")}


def value_format(raw: Any) -> str:
    """Name the storage format of a raw value: ``php``, ``json`` or ``text``."""
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return TEXT
    if is_php_serialized(raw):
        return PHP
    if looks_serialized(raw):
        return JSON
    return TEXT


def _php_array(items: Iterable[tuple[Any, Any]]) -> Any:
    # Arrays keyed 0..n-1 read back as lists, so both formats share one shape.
    pairs = list(items)
    if [key for key, _ in pairs] == list(range(len(pairs))):
        return [value for _, value in pairs]
    return dict(pairs)


def _decode_text(text: str) -> Any:
    if is_php_serialized(text):
        return phpserialize.loads(text.encode("utf-8"), decode_strings=True, array_hook=_php_array)
    if looks_serialized(text):
        return json.loads(text)
    return text


def decode_value(raw: Any) -> Any:
    """Decode a stored value; already-decoded values are returned untouched."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            return raw
    if not isinstance(raw, str):
        return raw
    try:
        decoded = _decode_text(raw)
    except (ValueError, IndexError, RecursionError):
        return raw
    if isinstance(decoded, (dict, list)):
        return decoded
    return raw


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def encode_value(value: Any, fmt: str = JSON) -> str:
    """Encode a value for storage.

    Containers are serialized in ``fmt``; strings are stored as they are.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if fmt == PHP:
        if isinstance(value, (dict, list)):
            return phpserialize.dumps(value).decode("utf-8")
        return _scalar_text(value)
    return json.dumps(value, ensure_ascii=False)


def serialized_length(value: Any) -> int:
    """Byte length of a value once encoded.

    Values nested too deeply to encode measure as 0.
    """
    try:
        return len(encode_value(value).encode("utf-8"))
    except (TypeError, ValueError, RecursionError):
        return 0
