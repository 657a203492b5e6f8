"""Text normalization for user-supplied free text."""

import re
from typing import Optional

_TAG = re.compile(r"<[^<>]*>")
_CONTROL = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip markup tags and control characters, then trim.

    Text is stored as typed otherwise: ``O'Brien`` and ``Tom & Jerry`` round-trip
    unchanged, and escaping is left to whatever renders it. Empty strings
    collapse to None so optional fields stay unset.
    """
    if value is None:
        return None
    value = _CONTROL.sub("", _TAG.sub("", value)).strip()
    return value or None
