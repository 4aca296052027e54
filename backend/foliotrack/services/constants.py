# backend/foliotrack/services/constants.py
"""
Centralized constants for Foliotrack services.

Single source of truth for business constants that are not meant to be
tuned per deployment (those live in foliotrack.config).

Usage:
    from foliotrack.services.constants import (
        TREND_DEAD_BAND,
        MONEY_QUANTUM,
    )
"""

import re
from decimal import Decimal


# =============================================================================
# PRECISION
# =============================================================================

# Monetary amounts in the reference currency are rounded to cents
MONEY_QUANTUM: Decimal = Decimal("0.01")

# Performance percentages (20.1234 means +20.1234%)
PERCENT_QUANTUM: Decimal = Decimal("0.0001")

# Prices, rates and fractional daily changes
PRICE_QUANTUM: Decimal = Decimal("0.00000001")


# =============================================================================
# PERFORMANCE
# =============================================================================

# Percent moves strictly inside (-0.01, 0.01) are shown as flat
TREND_DEAD_BAND: Decimal = Decimal("0.01")

# Provider change-percent values above this (in absolute value) are whole
# percentages (2.5 == 2.5%), values at or below it are fractions (0.025).
# Misreads genuine daily moves above 100%; accepted limitation.
WHOLE_PERCENT_THRESHOLD: Decimal = Decimal("1")


# =============================================================================
# MARKET DATA
# =============================================================================

# ISO 4217 style currency code
CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")

# Searches shorter than this return no results without calling the provider
MIN_SEARCH_QUERY_LENGTH: int = 2

# Yahoo quote types offered by the add-holding search
SEARCHABLE_QUOTE_TYPES: frozenset[str] = frozenset({"EQUITY", "ETF"})

# Days of history fetched when a quote needs a synthetic previous close
PREVIOUS_CLOSE_LOOKBACK_DAYS: int = 10
