"""Ticker universe loading and building.

The universe is the set of symbols the extractor accepts.  It is loaded once
by the composition root and handed to every extraction call; there is no
module-level cache.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, List, Union

import httpx

from .errors import ValidationError

logger = logging.getLogger(__name__)

NASDAQ_TRADED_URL = "https://www.nasdaqtrader.com/dynamic/SymDir/nasdaqtraded.txt"

MAX_SYMBOL_LENGTH = 12
_SYMBOL_LINE = re.compile(r"^[A-Z0-9][A-Z0-9.\-$=^/+]*$")


def normalize_symbol(symbol: str) -> str:
    """Upper-case ``symbol`` and use ``.`` as the share-class separator."""
    return symbol.strip().upper().replace("-", ".")


@dataclass(frozen=True)
class TickerUniverse:
    """Immutable set of valid symbols."""

    symbols: FrozenSet[str]

    @classmethod
    def from_symbols(cls, symbols: Iterable[str]) -> "TickerUniverse":
        return cls(frozenset(normalize_symbol(s) for s in symbols if s.strip()))

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.symbols

    def __len__(self) -> int:
        return len(self.symbols)

    def __iter__(self) -> Iterator[str]:
        return iter(self.symbols)


def load_universe(path: Union[str, os.PathLike]) -> TickerUniverse:
    """Load a newline-delimited symbol file.

    Raises :class:`ValidationError` when the file is missing, unreadable,
    empty, or contains a line that is not a single symbol.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ValidationError(f"missing tickers file: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"cannot read tickers file {path}: {exc}") from exc

    symbols: List[str] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        sym = line.upper()
        if len(sym) > MAX_SYMBOL_LENGTH or not _SYMBOL_LINE.match(sym):
            raise ValidationError(f"{path}:{lineno}: not a ticker symbol: {line!r}")
        symbols.append(sym)
    if not symbols:
        raise ValidationError(f"tickers file {path} contains no symbols")

    universe = TickerUniverse.from_symbols(symbols)
    logger.info("loaded %d tickers from %s", len(universe), path)
    return universe


def parse_nasdaq_traded(text: str) -> List[str]:
    """Parse the pipe-delimited Nasdaq ``nasdaqtraded.txt`` directory.

    Keeps non-test issues and prefers the ``CQS Symbol`` column over
    ``Symbol``.  The trailing ``File Creation Time`` row is dropped because
    it has the wrong column count.
    """
    lines = text.strip().splitlines()
    if not lines:
        return []
    headers = [h.strip() for h in lines[0].split("|")]
    idx = {h: i for i, h in enumerate(headers)}
    if "Symbol" not in idx and "CQS Symbol" not in idx:
        raise ValidationError("nasdaq directory has no symbol column")

    out = set()
    for line in lines[1:]:
        cols = line.split("|")
        if len(cols) != len(headers):
            continue
        symbol = ""
        if "CQS Symbol" in idx:
            symbol = cols[idx["CQS Symbol"]].strip()
        if not symbol and "Symbol" in idx:
            symbol = cols[idx["Symbol"]].strip()
        test_issue = cols[idx["Test Issue"]].strip() if "Test Issue" in idx else "N"
        if symbol and test_issue == "N":
            out.add(symbol.upper())
    return sorted(out)


def build_universe_file(
    path: Union[str, os.PathLike],
    url: str = NASDAQ_TRADED_URL,
    timeout: float = 30.0,
) -> int:
    """Download the Nasdaq directory and write the universe file.

    Returns the number of symbols written.
    """
    resp = httpx.get(url, timeout=timeout)
    resp.raise_for_status()
    symbols = parse_nasdaq_traded(resp.text)
    if not symbols:
        raise ValidationError(f"no symbols parsed from {url}")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(symbols) + "\n", encoding="utf-8")
    logger.info("wrote %d tickers to %s", len(symbols), path)
    return len(symbols)
