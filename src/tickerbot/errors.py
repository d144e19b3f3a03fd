"""Error taxonomy shared by the ingestion and ranking components."""

from __future__ import annotations


class TickerBotError(Exception):
    """Base class for all errors raised by :mod:`tickerbot`."""


class ValidationError(TickerBotError):
    """Malformed static input, e.g. a broken ticker-universe file.

    Raised at startup; the process cannot run without a valid universe.
    """


class TransientFetchError(TickerBotError):
    """Network failure or timeout while fetching history or prices."""


class PersistenceError(TickerBotError):
    """The mention store could not be read or written."""


class NotFoundError(TickerBotError):
    """Unknown channel or ticker. Callers treat this as an empty result."""


__all__ = [
    "TickerBotError",
    "ValidationError",
    "TransientFetchError",
    "PersistenceError",
    "NotFoundError",
]
