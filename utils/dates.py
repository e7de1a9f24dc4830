"""Date helpers for the DD/MM/YYYY strings used by appointment records."""

from __future__ import annotations

from typing import Optional


def month_key(date_text: object) -> Optional[str]:
    """
    Return the ``MM/YYYY`` bucket for a ``DD/MM/YYYY`` date, or None.

    Only the three-part shape is checked; no calendar validation is done.
    """
    if not isinstance(date_text, str):
        return None
    parts = date_text.strip().split("/")
    if len(parts) != 3 or not all(part.strip() for part in parts):
        return None
    _, month, year = (part.strip() for part in parts)
    return f"{month}/{year}"
