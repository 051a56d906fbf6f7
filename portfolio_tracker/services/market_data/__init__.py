# portfolio_tracker/services/market_data/__init__.py
"""
Market data providers.

Usage:
    from portfolio_tracker.services.market_data import YahooFinanceProvider

    provider = YahooFinanceProvider()
    quote = provider.get_quote("INFY.NS")
"""

from portfolio_tracker.services.market_data.base import (
    MarketDataProvider,
    ChartResult,
    OHLCVData,
)
from portfolio_tracker.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    "MarketDataProvider",
    "ChartResult",
    "OHLCVData",
    "YahooFinanceProvider",
]
