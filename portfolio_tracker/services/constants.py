# portfolio_tracker/services/constants.py
"""
Centralized business constants for the Portfolio Tracker services.

Values that operators may want to tune per deployment (timeouts, refresh
interval, local market suffix) live in config.Settings instead.

Usage:
    from portfolio_tracker.services.constants import (
        ALL_OWNERS,
        QUOTE_CHART_LOOKBACK_DAYS,
    )
"""

from decimal import Decimal


# =============================================================================
# OWNERS
# =============================================================================

# Owner filter value meaning "no filtering"
ALL_OWNERS: str = "All"


# =============================================================================
# QUOTE RESOLUTION
# =============================================================================

# Calendar days of daily bars requested by the chart fallback step.
# Seven days always spans at least one trading session across a weekend
# or a short exchange holiday.
QUOTE_CHART_LOOKBACK_DAYS: int = 7

# Summary modules requested by the summary fallback step
QUOTE_SUMMARY_MODULES: tuple[str, ...] = ("price",)


# =============================================================================
# TICKER SEARCH
# =============================================================================

# Instrument types kept in search results
SEARCHABLE_QUOTE_TYPES: frozenset[str] = frozenset({"EQUITY", "ETF"})

# Instrument types kept for the conglomerate subsidiary pass
CONGLOMERATE_QUOTE_TYPES: frozenset[str] = frozenset({"EQUITY"})

# Token appended for the bank-name disambiguation pass
BANK_SEARCH_TOKEN: str = "BANK"

# Group short names that resolve to nothing on their own, mapped to the
# listed subsidiary searched instead
CONGLOMERATE_SUBSIDIARIES: dict[str, str] = {
    "TATA": "TATA MOTORS",
}

# News items requested alongside search results (none are used)
SEARCH_NEWS_COUNT: int = 0


# =============================================================================
# NUMERIC PRECISION
# =============================================================================

# Precision for percentage figures (pl_percent, total_pl_percent)
PERCENT_PRECISION: Decimal = Decimal("0.01")


# =============================================================================
# RATE LIMITING (slowapi format: "N/period")
# =============================================================================

# Default for read endpoints served from the store
RATE_LIMIT_DEFAULT: str = "100/minute"

# Holding create/update/delete (each create or ticker edit hits the upstream)
RATE_LIMIT_WRITE: str = "30/minute"

# Endpoints that call the upstream market data provider directly
RATE_LIMIT_MARKET_DATA: str = "60/minute"

# Manual portfolio refresh (one quote lookup per held ticker)
RATE_LIMIT_REFRESH: str = "10/minute"

# Health checks (load balancers poll frequently)
RATE_LIMIT_HEALTH: str = "300/minute"
