#!/usr/bin/env python3
"""
Request payload helpers.

JSON bodies can carry any type; free-text fields must be strings.
"""

from typing import Any, Mapping, Optional

from vmguardian.exceptions import ValidationError


def text_field(data: Mapping[str, Any], key: str, default: Optional[str] = '', strip: bool = True) -> Optional[str]:
    """String value of data[key], stripped.

    Missing, null and empty values give `default`. Anything that is not a
    string raises ValidationError.
    """
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    if strip:
        value = value.strip()
    return value or default


def optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    """Like text_field, but blank values become None."""
    return text_field(data, key, default=None)
