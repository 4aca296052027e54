# backend/foliotrack/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Ticker validation and normalization
- Currency code validation
- Purchase date validation

These validators ensure consistent input handling across all schemas.
"""

import re
from datetime import date

from foliotrack.utils.date_utils import today_utc

# =============================================================================
# CONSTANTS
# =============================================================================

# Ticker: 1-20 chars, alphanumeric + dots + dashes + carets
# (Yahoo symbols such as VWCE.DE, BRK-B, ^GSPC)
TICKER_PATTERN = re.compile(r'^[\^]?[A-Z0-9][A-Z0-9.\-]{0,19}$')
TICKER_MAX_LENGTH = 20

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')

# Earliest purchase date accepted by the add/edit forms
MIN_PURCHASE_DATE = date(1900, 1, 1)


# =============================================================================
# TICKER VALIDATION
# =============================================================================

def validate_ticker(value: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Valid formats:
    - Standard tickers: AAPL, NVDA, MSFT
    - Exchange-suffixed: VWCE.DE, ENI.MI
    - Share classes: BRK-B
    - Indices with caret: ^GSPC

    Args:
        value: Raw ticker input

    Returns:
        Normalized ticker (uppercase, trimmed)

    Raises:
        ValueError: If ticker format is invalid
    """
    if not value:
        raise ValueError("Ticker cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > TICKER_MAX_LENGTH:
        raise ValueError(f"Ticker cannot exceed {TICKER_MAX_LENGTH} characters")

    if not TICKER_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid ticker format: '{normalized}'. "
            "Ticker must be alphanumeric, may include dots (.), dashes (-) "
            "or start with caret (^)"
        )

    return normalized


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """
    Validate and normalize a currency code.

    Raises:
        ValueError: If the code is not three letters
    """
    normalized = (value or "").strip().upper()
    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(f"Invalid currency code: '{value}'. Expected 3 letters (e.g. EUR)")
    return normalized


# =============================================================================
# DATE VALIDATION
# =============================================================================

def validate_purchase_date(value: date | None) -> date | None:
    """
    Reject purchase dates in the future or before MIN_PURCHASE_DATE.

    None passes through; the store defaults it to today.
    """
    if value is None:
        return None
    if value > today_utc():
        raise ValueError(f"Purchase date cannot be in the future (sent: {value})")
    if value < MIN_PURCHASE_DATE:
        raise ValueError(f"Purchase date cannot be before {MIN_PURCHASE_DATE}")
    return value
