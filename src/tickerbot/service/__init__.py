"""Services built on top of the mention store."""

from .commands import BaselineMode, CommandService, Dashboard, Leaderboard, TickerListing
from .publisher import Publisher

__all__ = [
    "BaselineMode",
    "CommandService",
    "Dashboard",
    "Leaderboard",
    "Publisher",
    "TickerListing",
]
