"""
Detection of self-nested metadata values.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from database import MetaRecord, decode_value
from database.codec import serialized_length

THRESHOLD = 1000
LARGE_ELEMENT_BYTES = 100000
_MISSING = object()


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def get_entry(container: Any, key: str) -> Any:
    """Look up an entry by string key; list entries are addressed by index.

    PHP arrays keep integer keys, so a canonical decimal key also matches
    the integer it spells.
    """
    index = int(key) if key.isascii() and key.isdigit() and str(int(key)) == key else None
    if isinstance(container, dict):
        if key in container:
            return container[key]
        return container.get(index, _MISSING) if index is not None else _MISSING
    if isinstance(container, list):
        if index is None:
            return _MISSING
        return container[index] if index < len(container) else _MISSING
    return _MISSING


def has_self_entry(key: str, value: Any) -> bool:
    """True when the container holds a non-null entry under its own key."""
    entry = get_entry(value, key)
    return entry is not _MISSING and entry is not None


def first_element(entry: Any) -> Any:
    """Return the first positional element of an entry, or None."""
    if isinstance(entry, list):
        return entry[0] if entry else None
    if isinstance(entry, dict):
        return next(iter(entry.values()), None)
    if isinstance(entry, str):
        return entry[:1]
    return None


def _entries(value: Any) -> Iterator[Any]:
    if isinstance(value, dict):
        return iter(value.values())
    return iter(value)


def has_large_nested_element(value: Any) -> bool:
    for entry in _entries(value):
        element = first_element(entry)
        if element is not None and serialized_length(element) > LARGE_ELEMENT_BYTES:
            return True
    return False


def is_affected_value(key: str, value: Any) -> bool:
    """Check an already-decoded value for the corruption signature.

    The value is never modified.
    """
    if not is_container(value):
        return False
    if has_self_entry(key, value):
        return True
    return len(value) > THRESHOLD and has_large_nested_element(value)


def is_affected(record: MetaRecord, decoded: Optional[Any] = None) -> bool:
    """Decode a record's value and check it for the corruption signature."""
    value = decode_value(record.meta_value) if decoded is None else decoded
    return is_affected_value(record.meta_key, value)
