# backend/foliotrack/services/market_data/yahoo.py
"""
Yahoo Finance quote provider implementation.

This module implements the QuoteProvider interface using the yfinance library.
Yahoo Finance is a free data source suitable for personal/educational use.

Key features:
- Two quote paths: the full `info` record and the lighter `fast_info`
- Daily close history for the history chart
- FX rates through Yahoo's currency symbols ({BASE}{QUOTE}=X)
- Security search restricted to equities and ETFs
- Retry mechanism inherited from base class

Limitations:
- Rate limits (not officially documented, but exist)
- Data may be delayed (15-20 minutes for some markets)
- `regularMarketChangePercent` is sometimes a fraction and sometimes a
  whole percentage; normalization happens in quotes.py, not here
"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

import yfinance as yf

from foliotrack.services.constants import PRICE_QUANTUM, SEARCHABLE_QUOTE_TYPES
from foliotrack.services.exceptions import (
    FXRateNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from foliotrack.services.market_data.base import (
    PricePoint,
    QuoteProvider,
    RawQuote,
    SecurityMatch,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(QuoteProvider):
    """
    Yahoo Finance implementation of QuoteProvider.

    Configuration:
        timeout: API request timeout in seconds (default: 10)

    Retry Behavior (inherited from QuoteProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError (permanent failure)
        - Uses exponential backoff: 1s → 2s → 4s
        - Maximum 3 attempts (configurable via class attributes)

    Example:
        provider = YahooFinanceProvider(timeout=15)

        raw = provider.get_quote_info("VWCE.DE")
        print(raw.price, raw.currency)

        closes = provider.get_price_history(
            "VWCE.DE", date(2024, 1, 1), date(2024, 12, 31)
        )
    """

    # Days of history scanned when fast_info has no FX price
    FX_HISTORY_PERIOD: str = "5d"

    def __init__(self, timeout: int = 10) -> None:
        """
        Initialize the Yahoo Finance provider.

        Args:
            timeout: Request timeout in seconds
        """
        self._timeout = timeout
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTE METHODS
    # =========================================================================

    def get_quote_info(self, symbol: str) -> RawQuote:
        """
        Fetch the full quote record (`Ticker.info`).

        Raises:
            TickerNotFoundError: If Yahoo has no meaningful data for symbol
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        return self._execute_with_retry(self._fetch_quote_info, symbol)

    def _fetch_quote_info(self, symbol: str) -> RawQuote:
        """Internal method to fetch the info record (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote info for {symbol}")

        try:
            info = yf.Ticker(symbol).info

            if not self._is_valid_ticker_info(info):
                raise TickerNotFoundError(ticker=symbol, provider=self.name)

            return RawQuote(
                symbol=symbol,
                price=self._to_decimal(
                    info.get("regularMarketPrice") or info.get("currentPrice")
                ),
                currency=info.get("currency"),
                name=info.get("longName") or info.get("shortName"),
                previous_close=self._to_decimal(
                    info.get("regularMarketPreviousClose") or info.get("previousClose")
                ),
                change=self._to_decimal(info.get("regularMarketChange")),
                change_percent=self._to_decimal(info.get("regularMarketChangePercent")),
            )

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(e, symbol)

    def get_fast_quote(self, symbol: str) -> RawQuote:
        """
        Fetch the lightweight quote (`Ticker.fast_info`).

        fast_info carries no display name; callers fall back to the symbol.
        """
        return self._execute_with_retry(self._fetch_fast_quote, symbol)

    def _fetch_fast_quote(self, symbol: str) -> RawQuote:
        """Internal method to fetch fast_info (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching fast quote for {symbol}")

        try:
            fast_info = yf.Ticker(symbol).fast_info

            return RawQuote(
                symbol=symbol,
                price=self._to_decimal(fast_info.last_price),
                currency=fast_info.currency,
                name=None,
                previous_close=self._to_decimal(fast_info.previous_close),
            )

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(e, symbol)

    # =========================================================================
    # HISTORICAL PRICE METHODS
    # =========================================================================

    def get_price_history(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> list[PricePoint]:
        """
        Fetch daily closes from Yahoo Finance.

        Args:
            symbol: Yahoo symbol (e.g., "VWCE.DE")
            start_date: Start date (inclusive)
            end_date: End date (inclusive)

        Returns:
            PricePoints ascending by date; empty if Yahoo has no rows

        Raises:
            TickerNotFoundError: If ticker not found
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        return self._execute_with_retry(
            self._fetch_price_history,
            symbol,
            start_date,
            end_date,
        )

    def _fetch_price_history(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> list[PricePoint]:
        """Internal method to fetch daily closes."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching price history for {symbol}: {start_date} to {end_date}")

        try:
            # Yahoo Finance end date is exclusive, so add 1 day
            yahoo_end = end_date + timedelta(days=1)

            df = yf.Ticker(symbol).history(
                start=start_date.isoformat(),
                end=yahoo_end.isoformat(),
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )

            if df is None or df.empty:
                logger.warning(
                    f"No price data for {symbol} between {start_date} and {end_date}"
                )
                return []

            points = self._dataframe_to_points(df)
            logger.debug(f"Fetched {len(points)} closes for {symbol}")
            return points

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(e, symbol)

    def _dataframe_to_points(self, df) -> list[PricePoint]:
        """
        Convert a yfinance history DataFrame to PricePoints.

        Rows with a missing or non-positive close are skipped. Duplicate
        dates keep the last row.
        """
        by_date: dict[date, PricePoint] = {}

        for idx, row in df.iterrows():
            price_date = idx.date() if hasattr(idx, 'date') else idx
            close_price = self._to_decimal(row.get('Close'))

            if close_price is None or close_price <= 0:
                logger.warning(f"Skipping {price_date}: missing close price")
                continue

            by_date[price_date] = PricePoint(date=price_date, close=close_price)

        return [by_date[d] for d in sorted(by_date)]

    # =========================================================================
    # FX METHODS
    # =========================================================================

    def get_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        """
        Fetch the latest FX rate for base → quote.

        Tries fast_info first, then the last close of the past few days.

        Raises:
            FXRateNotFoundError: If Yahoo has no usable price for the pair
            ProviderUnavailableError: If Yahoo Finance unavailable
        """
        return self._execute_with_retry(self._fetch_fx_rate, base_currency, quote_currency)

    def _fetch_fx_rate(self, base_currency: str, quote_currency: str) -> Decimal:
        base = base_currency.strip().upper()
        quote = quote_currency.strip().upper()
        symbol = self.build_fx_symbol(base, quote)
        logger.debug(f"Fetching FX rate {symbol}")

        try:
            yf_ticker = yf.Ticker(symbol)

            rate = self._to_decimal(yf_ticker.fast_info.last_price)
            if rate is not None and rate > 0:
                return rate

            df = yf_ticker.history(period=self.FX_HISTORY_PERIOD, timeout=self._timeout)
            if df is not None and not df.empty:
                points = self._dataframe_to_points(df)
                if points:
                    return points[-1].close

        except MarketDataError:
            raise
        except Exception as e:
            error = self._classify_error(e, symbol)
            if isinstance(error, TickerNotFoundError):
                raise FXRateNotFoundError(base, quote)
            raise error

        raise FXRateNotFoundError(base, quote)

    @staticmethod
    def build_fx_symbol(base_currency: str, quote_currency: str) -> str:
        """Yahoo FX symbol: USDEUR=X is the price of 1 USD in EUR."""
        return f"{base_currency.upper()}{quote_currency.upper()}=X"

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, query: str) -> list[SecurityMatch]:
        """
        Search Yahoo Finance for equities and ETFs matching query.

        Keeps only results Yahoo flags as its own listings, of a searchable
        quote type, whose symbol is not a currency pair ("=" in symbol) and
        that have a name.
        """
        return self._execute_with_retry(self._fetch_search, query)

    def _fetch_search(self, query: str) -> list[SecurityMatch]:
        logger.debug(f"Searching Yahoo Finance for '{query}'")

        try:
            results = yf.Search(query, news_count=0, timeout=self._timeout).quotes or []
        except Exception as e:
            raise self._classify_error(e, query)

        matches = []
        for item in results:
            symbol = item.get("symbol")
            quote_type = item.get("quoteType")
            name = item.get("longname") or item.get("shortname")

            if not symbol or "=" in symbol:
                continue
            if quote_type not in SEARCHABLE_QUOTE_TYPES:
                continue
            if not item.get("isYahooFinance"):
                continue
            if not name:
                continue

            matches.append(SecurityMatch(
                ticker=symbol,
                name=name,
                exchange=item.get("exchDisp") or item.get("exchange"),
                quote_type=quote_type,
            ))

        return matches

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _classify_error(self, error: Exception, symbol: str) -> MarketDataError:
        """Map a raw yfinance/network exception to our error hierarchy."""
        error_str = str(error).lower()

        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(ticker=symbol, provider=self.name)

        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    def _is_valid_ticker_info(self, info: dict | None) -> bool:
        """
        Check if Yahoo Finance info dict represents a valid ticker.

        Yahoo returns an info dict even for invalid tickers, but it lacks
        meaningful data. We check for price or name to validate.
        """
        if not info:
            return False
        return bool(
            info.get("regularMarketPrice")
            or info.get("shortName")
            or info.get("longName")
        )

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/inf/None."""
        if value is None:
            return None
        try:
            if not math.isfinite(float(value)):
                return None
            return Decimal(str(value)).quantize(PRICE_QUANTUM)
        except (TypeError, ValueError, InvalidOperation):
            return None
