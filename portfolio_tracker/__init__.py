# portfolio_tracker/__init__.py
"""
Portfolio Tracker: holdings, live quotes and portfolio valuation.

The service resolves current quotes through a fallback chain, fetches
daily history per ticker, and derives owner-filtered portfolio metrics.
"""

__version__ = "0.1.0"
