"""Ticker extraction from free-form chat text."""

from __future__ import annotations

import re
from typing import Set

from .universe import TickerUniverse

# TSLA / $TSLA / BRK.B / BRK-B, bounded by non-alphanumerics or string edges
TICKER_PATTERN = re.compile(
    r"(?<![A-Za-z0-9])\$?([A-Za-z]{1,5}(?:[.\-][A-Za-z]{1,2})?)(?![A-Za-z0-9])"
)


def extract_tickers(text: str, universe: TickerUniverse) -> Set[str]:
    """Return the set of universe symbols mentioned in ``text``.

    Matching is case-insensitive and ``-`` class separators are read as
    ``.`` (``BRK-A`` -> ``BRK.A``).  ``finditer`` yields non-overlapping
    spans, so one span never counts twice.
    """
    if not text:
        return set()
    found: Set[str] = set()
    for match in TICKER_PATTERN.finditer(text):
        candidate = match.group(1).upper().replace("-", ".")
        if candidate in universe:
            found.add(candidate)
    return found
