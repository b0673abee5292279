# porteria/utils/plates.py
"""Plate normalization shared by intake, vehicle lookup and reservation search."""

import re

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_plate(raw) -> str:
    """Uppercase and drop everything that is not A-Z / 0-9 ("abc-12 3" → "ABC123")."""
    if raw is None:
        return ""
    return _NON_ALNUM.sub("", str(raw).upper())
