# backend/foliotrack/services/market_data/gateway.py
"""
Async Quote Gateway.

The single point through which the valuation engine and the holdings
service reach market data. It wraps a synchronous QuoteProvider:

- Blocking provider calls run in worker threads (asyncio.to_thread)
- A semaphore bounds how many run at once
- Every method recovers locally and NEVER raises: failures become
  None or [] and are logged

Quote fallback chain (get_quote):
    1. Primary path: provider.get_quote_info
    2. Secondary path: provider.get_fast_quote, name falls back to ticker
    3. None

Exchange rates (get_exchange_rate):
    - Same currency: 1, without a provider call
    - Direct pair (USDEUR=X), else the inverted reverse pair (EURUSD=X)
    - None if neither resolves

Usage:
    gateway = QuoteGateway()
    quote = await gateway.get_quote("VWCE.DE")
    rate = await gateway.get_exchange_rate("USD", "EUR")
"""

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, TypeVar

from foliotrack.config import settings
from foliotrack.services.constants import (
    MIN_SEARCH_QUERY_LENGTH,
    PREVIOUS_CLOSE_LOOKBACK_DAYS,
    PRICE_QUANTUM,
)
from foliotrack.services.exceptions import (
    FXRateNotFoundError,
    TickerNotFoundError,
)
from foliotrack.services.market_data.base import (
    PricePoint,
    Quote,
    QuoteProvider,
    RawQuote,
    SecurityMatch,
)
from foliotrack.services.market_data.quotes import (
    build_quote,
    is_valid_candidate,
    last_close_before,
    needs_synthetic_previous_close,
)
from foliotrack.services.market_data.yahoo import YahooFinanceProvider
from foliotrack.utils.date_utils import today_utc

logger = logging.getLogger(__name__)

T = TypeVar('T')


class QuoteGateway:
    """
    Async, never-raising facade over a QuoteProvider.

    Attributes:
        provider: Underlying synchronous provider
        max_concurrency: Provider calls allowed in flight at once
    """

    def __init__(
            self,
            provider: QuoteProvider | None = None,
            max_concurrency: int | None = None,
            today: Callable[[], date] = today_utc,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            provider: Quote provider (default: YahooFinanceProvider)
            max_concurrency: Parallel provider calls (default: settings)
            today: Clock used for history end dates and previous closes
        """
        self.provider = provider or YahooFinanceProvider(timeout=settings.yahoo_timeout)
        self.max_concurrency = max_concurrency or settings.market_data_max_concurrency
        self._today = today
        self._semaphore: asyncio.Semaphore | None = None
        self._semaphore_loop: asyncio.AbstractEventLoop | None = None

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def get_quote(self, ticker: str) -> Quote | None:
        """
        Live quote for ticker, or None if both provider paths fail.

        Args:
            ticker: Non-empty symbol

        Returns:
            Validated Quote with normalized daily change, or None
        """
        symbol = (ticker or "").strip().upper()
        if not symbol:
            return None

        primary = await self._call_or_none(
            self.provider.get_quote_info, symbol, action=f"quote info for {symbol}"
        )
        quote = await self._complete_quote(symbol, primary)
        if quote is not None:
            return quote

        logger.info(f"Primary quote unusable for {symbol}, trying secondary path")

        secondary = await self._call_or_none(
            self.provider.get_fast_quote, symbol, action=f"fast quote for {symbol}"
        )
        quote = await self._complete_quote(symbol, secondary, fallback_name=symbol)
        if quote is None:
            logger.warning(f"No usable quote for {symbol}")
        return quote

    async def get_quotes(self, tickers: Iterable[str]) -> dict[str, Quote | None]:
        """Quotes for distinct tickers, fetched concurrently."""
        symbols = sorted({t.strip().upper() for t in tickers if t and t.strip()})
        results = await asyncio.gather(*[self.get_quote(s) for s in symbols])
        return dict(zip(symbols, results))

    async def _complete_quote(
            self,
            symbol: str,
            raw: RawQuote | None,
            fallback_name: str | None = None,
    ) -> Quote | None:
        synthetic_previous_close = None
        if is_valid_candidate(raw) and needs_synthetic_previous_close(raw):
            synthetic_previous_close = await self._synthetic_previous_close(symbol)
        return build_quote(
            symbol,
            raw,
            synthetic_previous_close=synthetic_previous_close,
            fallback_name=fallback_name,
        )

    async def _synthetic_previous_close(self, symbol: str) -> Decimal | None:
        """Most recent historical close before today."""
        today = self._today()
        points = await self.get_historical_data(
            symbol, today - timedelta(days=PREVIOUS_CLOSE_LOOKBACK_DAYS), today
        )
        return last_close_before(points, today)

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def get_historical_data(
            self,
            ticker: str,
            start_date: date,
            end_date: date | None = None,
    ) -> list[PricePoint]:
        """
        Daily closes from start_date to end_date (default today).

        Returns:
            PricePoints ascending by date; [] on any failure
        """
        symbol = (ticker or "").strip().upper()
        end_date = end_date or self._today()
        if not symbol or start_date > end_date:
            return []

        points = await self._call_or_none(
            self.provider.get_price_history,
            symbol,
            start_date,
            end_date,
            action=f"price history for {symbol}",
        )
        return sorted(points or [], key=lambda p: p.date)

    # =========================================================================
    # EXCHANGE RATES
    # =========================================================================

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        """
        Multiplier converting from_currency amounts into to_currency.

        Returns:
            Decimal rate (1 for identical currencies), or None
        """
        base = (from_currency or "").strip().upper()
        quote = (to_currency or "").strip().upper()

        if not base or not quote:
            return None
        if base == quote:
            return Decimal("1")

        try:
            return await self._run(self.provider.get_fx_rate, base, quote)
        except (FXRateNotFoundError, TickerNotFoundError):
            logger.info(f"No direct rate {base}/{quote}, trying inverse {quote}/{base}")
        except Exception as e:
            logger.warning(f"Exchange rate {base}/{quote} failed: {e}")
            return None

        inverse = await self._call_or_none(
            self.provider.get_fx_rate, quote, base, action=f"exchange rate {quote}/{base}"
        )
        if inverse is None or inverse <= 0:
            logger.warning(f"Exchange rate {base}/{quote} unavailable")
            return None
        return (Decimal("1") / inverse).quantize(PRICE_QUANTUM)

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_securities(self, query: str) -> list[SecurityMatch]:
        """
        Equities and ETFs matching query.

        Queries shorter than two characters return [] without a provider call.
        """
        text = (query or "").strip()
        if len(text) < MIN_SEARCH_QUERY_LENGTH:
            return []

        matches = await self._call_or_none(
            self.provider.search, text, action=f"search '{text}'"
        )
        return matches or []

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _gate(self) -> asyncio.Semaphore:
        """Semaphore bound to the running event loop."""
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking provider call in a worker thread, under the gate."""
        async with self._gate():
            return await asyncio.to_thread(func, *args)

    async def _call_or_none(self, func: Callable[..., T], *args: Any, action: str) -> T | None:
        """Like _run, but failures are logged and become None."""
        try:
            return await self._run(func, *args)
        except Exception as e:
            logger.warning(f"{action} failed: {e}")
            return None
