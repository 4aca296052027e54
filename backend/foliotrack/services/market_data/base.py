# backend/foliotrack/services/market_data/base.py
"""
Abstract interface for quote providers.

This module defines the contract that every quote provider must follow,
plus the data transfer objects shared by the provider and the gateway.

Design Principles:
- Providers are synchronous and may raise (MarketDataError family)
- Retry logic is implemented once here, not in every provider
- The async QuoteGateway is the only caller, and it never raises

Data classes:
    RawQuote       - Unvalidated quote candidate as the provider returned it
    Quote          - Validated, normalized quote
    PricePoint     - One daily close
    SecurityMatch  - One search result
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from foliotrack.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class RawQuote:
    """
    Quote candidate exactly as one provider path produced it.

    Nothing is validated yet: price may be missing or non-positive, and
    change_percent may be a fraction or a whole percentage.

    Attributes:
        symbol: Symbol requested
        price: Last price
        currency: Trading currency as reported
        name: Display name as reported
        previous_close: Previous session close
        change: Provider's own absolute daily change
        change_percent: Provider's own daily change percent (unnormalized)
    """

    symbol: str
    price: Decimal | None = None
    currency: str | None = None
    name: str | None = None
    previous_close: Decimal | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None


@dataclass(frozen=True)
class Quote:
    """
    Validated live quote. Ephemeral, never persisted.

    Attributes:
        ticker: Symbol the quote is for
        price: Last price (> 0)
        currency: 3-letter currency code
        name: Non-empty display name
        daily_change: Absolute per-unit move since previous close
        daily_change_percent: Same move as a fraction (0.025 == 2.5%)
    """

    ticker: str
    price: Decimal
    currency: str
    name: str
    daily_change: Decimal | None = None
    daily_change_percent: Decimal | None = None


@dataclass(frozen=True)
class PricePoint:
    """Daily close of one symbol."""

    date: date
    close: Decimal

    def __post_init__(self) -> None:
        if self.close <= 0:
            raise ValueError(f"close price must be positive, got {self.close}")


@dataclass(frozen=True)
class SecurityMatch:
    """
    One result of a security search.

    Attributes:
        ticker: Yahoo symbol (e.g. "VWCE.DE")
        name: Long name, or short name when Yahoo has no long name
        exchange: Exchange display name or code
        quote_type: "EQUITY" or "ETF"
    """

    ticker: str
    name: str
    exchange: str | None
    quote_type: str


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class QuoteProvider(ABC):
    """
    Abstract base class for quote providers.

    Retry Behavior:
        `_execute_with_retry` implements exponential backoff. Subclasses
        can tune it through class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: API rate limit exceeded

    Non-Retryable Exceptions:
        - TickerNotFoundError: Permanent failure (symbol doesn't exist)
        - FXRateNotFoundError: No usable rate for a pair
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and error messages."""
        pass

    @abstractmethod
    def get_quote_info(self, symbol: str) -> RawQuote:
        """
        Primary quote path: the provider's full quote record.

        Raises:
            TickerNotFoundError: Symbol unknown
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    @abstractmethod
    def get_fast_quote(self, symbol: str) -> RawQuote:
        """
        Secondary quote path: a lighter record with fewer fields.

        Raises:
            Same as get_quote_info
        """
        pass

    @abstractmethod
    def get_price_history(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> list[PricePoint]:
        """
        Daily closes between start_date and end_date (both inclusive).

        Returns:
            Points ascending by date; empty if the range has no data

        Raises:
            TickerNotFoundError: Symbol unknown
            ProviderUnavailableError: Network or API error (retryable)
        """
        pass

    @abstractmethod
    def get_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        """
        Latest rate: 1 unit of base_currency = rate units of quote_currency.

        Raises:
            FXRateNotFoundError: Pair not quoted
            ProviderUnavailableError: Network or API error (retryable)
        """
        pass

    @abstractmethod
    def search(self, query: str) -> list[SecurityMatch]:
        """
        Free-text security search, restricted to equities and ETFs.

        Raises:
            ProviderUnavailableError: Network or API error (retryable)
        """
        pass

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Retries ProviderUnavailableError and RateLimitError with
        exponential backoff; any other exception propagates at once.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
