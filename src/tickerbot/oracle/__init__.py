"""Daily price data providers."""

from .base import DailyPoint, PriceOracle, PriceSeries
from .yahoo import YahooChartOracle

__all__ = ["DailyPoint", "PriceSeries", "PriceOracle", "YahooChartOracle"]
