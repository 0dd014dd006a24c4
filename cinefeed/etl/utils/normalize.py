"""Key-name normalization for provider reference payloads.

The provider sometimes ships keys such as ``"NameEN\\t"`` or
``" address"``; keys are cleaned recursively before storage.
"""

import re
from typing import Any

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def clean_key(key: str) -> str:
    """Strip control characters and surrounding whitespace from a key."""
    return _CONTROL_CHARS.sub("", key).strip()


def clean_property_names(data: Any) -> Any:
    """Return a copy of data with every dict key cleaned.

    Args:
        data: Decoded JSON value (dict, list or scalar).

    Returns:
        Same structure with normalized keys. Values are left untouched.
    """
    if isinstance(data, list):
        return [clean_property_names(item) for item in data]
    if isinstance(data, dict):
        return {
            clean_key(key) if isinstance(key, str) else key: clean_property_names(value)
            for key, value in data.items()
        }
    return data
