"""Generic utility functions."""

from .config import BotConfig, parse_args

__all__ = ["BotConfig", "parse_args"]
