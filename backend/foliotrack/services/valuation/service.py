# backend/foliotrack/services/valuation/service.py
"""
Valuation Engine - Main orchestrator for portfolio valuation.

This is the single entry point for all valuation operations:
- compute_snapshot(): Present-moment totals and per-holding performance
- compute_historical_series(): Daily value series for a window
- compute_allocation(): Breakdown by category or by holding
- performance_at(): Hover re-derivation on an existing series

Design Principles:
- Dependency Injection: the quote gateway is injected via constructor
- Single Entry Point: every screen uses the same engine
- No HTTP Knowledge: raises domain exceptions only for contract violations
- Per-pass state is explicit: the ExchangeRateMemo goes in and comes back
  out of every call, nothing is cached at module level
- Concurrency: distinct tickers and distinct currencies are fetched
  concurrently (asyncio.gather)

Usage:
    from foliotrack.services.valuation import ValuationEngine

    engine = ValuationEngine()

    snapshot = await engine.compute_snapshot(holdings, "EUR")
    history = await engine.compute_historical_series(
        holdings, "6M", "EUR", rates=snapshot.rates
    )
    allocation = await engine.compute_allocation(
        holdings, "EUR", "category", rates=history.rates
    )
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, TYPE_CHECKING

from foliotrack.config import settings
from foliotrack.services.exceptions import InvalidGroupingError, ValidationError
from foliotrack.services.market_data.base import PricePoint
from foliotrack.services.valuation.calculators import (
    AllocationCalculator,
    PerformanceCalculator,
    SnapshotCalculator,
)
from foliotrack.services.valuation.history_calculator import (
    HistoryCalculator,
    parse_window,
    resolve_window_start,
)
from foliotrack.services.valuation.types import (
    AllocationGrouping,
    ExchangeRateMemo,
    HistoryPoint,
    HistoryWindow,
    Holding,
    PerformanceResult,
    PortfolioAllocation,
    PortfolioHistory,
    PortfolioSnapshot,
)
from foliotrack.utils.context import computation_pass
from foliotrack.utils.date_utils import today_utc
from foliotrack.schemas.validators import validate_currency

if TYPE_CHECKING:
    from foliotrack.services.protocols import QuoteGatewayProtocol

logger = logging.getLogger(__name__)


class ValuationEngine:
    """
    Main service for portfolio valuation operations.

    Attributes:
        _gateway: Injected quote gateway (never raises)
        _history_lookback_days: Days of closes fetched before a window start
        _today: Clock
    """

    def __init__(
            self,
            gateway: QuoteGatewayProtocol | None = None,
            history_lookback_days: int | None = None,
            today: Callable[[], date] = today_utc,
    ) -> None:
        """
        Initialize the valuation engine.

        Args:
            gateway: Quote gateway. If None, creates a QuoteGateway over
                     Yahoo Finance.
            history_lookback_days: Default from settings
            today: Clock used to resolve windows
        """
        # Lazy import to avoid circular dependencies
        if gateway is None:
            from foliotrack.services.market_data import QuoteGateway
            gateway = QuoteGateway()

        self._gateway: QuoteGatewayProtocol = gateway
        self._history_lookback_days = (
            settings.history_lookback_days
            if history_lookback_days is None
            else history_lookback_days
        )
        self._today = today

        self._performance_calc = PerformanceCalculator()
        self._snapshot_calc = SnapshotCalculator()
        self._allocation_calc = AllocationCalculator()
        self._history_calc = HistoryCalculator()

        logger.info("ValuationEngine initialized")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def compute_snapshot(
            self,
            holdings: list[Holding],
            reference_currency: str | None = None,
            rates: ExchangeRateMemo | None = None,
    ) -> PortfolioSnapshot:
        """
        Present-moment value of holdings in the reference currency.

        Args:
            holdings: Holdings to value
            reference_currency: Reporting currency (default: settings)
            rates: Memo from an earlier call of the same pass

        Returns:
            PortfolioSnapshot (total 0 and no lines for empty input)
        """
        with computation_pass("snapshot") as pass_id:
            memo = await self._resolve_rates(holdings, reference_currency, rates)
            snapshot = self._snapshot_calc.calculate(holdings, memo)

            logger.info(
                f"Snapshot {pass_id}: {len(holdings)} holdings, "
                f"total {snapshot.total_value} {memo.reference_currency}, "
                f"{len(snapshot.excluded_holding_ids)} excluded"
            )
            return snapshot

    async def compute_historical_series(
            self,
            holdings: list[Holding],
            window: HistoryWindow | str,
            reference_currency: str | None = None,
            rates: ExchangeRateMemo | None = None,
    ) -> PortfolioHistory:
        """
        Daily portfolio value from the window start to today.

        Args:
            holdings: Holdings to value
            window: 1M, 6M, 1Y, YTD or MAX
            reference_currency: Reporting currency (default: settings)
            rates: Memo from an earlier call of the same pass

        Returns:
            PortfolioHistory. Empty for empty input; the flat two-point
            (yesterday, today) series at the snapshot total when no
            security has price history, or no points when that total is 0.

        Raises:
            InvalidWindowError: If window is not recognized
        """
        resolved_window = parse_window(window)

        with computation_pass("history") as pass_id:
            today = self._today()
            start_date = resolve_window_start(resolved_window, today, holdings)
            memo = self._initial_memo(reference_currency, rates)

            if not holdings:
                return PortfolioHistory(
                    reference_currency=memo.reference_currency,
                    window=resolved_window,
                    start_date=start_date,
                    end_date=today,
                    points=[],
                    rates=memo,
                )

            memo, price_series = await asyncio.gather(
                self._resolve_rates(holdings, memo.reference_currency, memo),
                self._fetch_price_series(holdings, start_date, today),
            )

            reconstruction = self._history_calc.calculate(
                holdings, start_date, today, price_series, memo
            )
            points = reconstruction.points
            warnings = list(reconstruction.warnings)

            if reconstruction.needs_fallback:
                snapshot = self._snapshot_calc.calculate(holdings, memo)
                if snapshot.total_value == 0:
                    # Zero-valued days are never plotted
                    points = []
                    warnings.append("No price history and no current value to show")
                else:
                    points = [
                        HistoryPoint(date=today - timedelta(days=1), value=snapshot.total_value),
                        HistoryPoint(date=today, value=snapshot.total_value),
                    ]
                    warnings.append(
                        "No price history available; showing the current value as a flat series"
                    )

            logger.info(
                f"History {pass_id}: window {resolved_window.value} from {start_date}, "
                f"{len(points)} points{' (fallback)' if reconstruction.needs_fallback else ''}"
            )

            return PortfolioHistory(
                reference_currency=memo.reference_currency,
                window=resolved_window,
                start_date=start_date,
                end_date=today,
                points=points,
                rates=memo,
                is_fallback=reconstruction.needs_fallback,
                warnings=warnings,
            )

    async def compute_allocation(
            self,
            holdings: list[Holding],
            reference_currency: str | None = None,
            group_by: AllocationGrouping | str = AllocationGrouping.CATEGORY,
            rates: ExchangeRateMemo | None = None,
    ) -> PortfolioAllocation:
        """
        Breakdown of current value by category or by holding.

        Raises:
            InvalidGroupingError: If group_by is not "category" or "holding"
        """
        grouping = self._parse_grouping(group_by)

        with computation_pass("allocation") as pass_id:
            memo = await self._resolve_rates(holdings, reference_currency, rates)
            allocation = self._allocation_calc.calculate(holdings, memo, grouping)

            logger.info(
                f"Allocation {pass_id}: {len(allocation.slices)} slices by "
                f"{grouping.value}, total {allocation.total_value} {memo.reference_currency}"
            )
            return allocation

    def performance_at(self, history: PortfolioHistory, point_date: date) -> PerformanceResult:
        """
        Performance of the hovered point against the first point of a series.

        Pure re-derivation, no network calls. A date between points uses
        the last point on or before it; a date before the series uses the
        first point.
        """
        if not history.points:
            return self._performance_calc.calculate(Decimal("0"), Decimal("0"))

        hovered = history.points[0]
        for point in history.points:
            if point.date > point_date:
                break
            hovered = point

        return self._performance_calc.calculate(history.initial_value, hovered.value)

    # =========================================================================
    # DATA FETCHING (concurrent)
    # =========================================================================

    def _initial_memo(
            self,
            reference_currency: str | None,
            rates: ExchangeRateMemo | None,
    ) -> ExchangeRateMemo:
        """
        Memo to start the call from.

        A memo for another reference currency cannot be reused and is
        replaced by an empty one.
        """
        try:
            reference = validate_currency(reference_currency or settings.reference_currency)
        except ValueError as e:
            raise ValidationError(str(e), field="reference_currency")

        if rates is None:
            return ExchangeRateMemo(reference_currency=reference)
        if rates.reference_currency != reference:
            logger.debug(
                f"Ignoring rate memo for {rates.reference_currency}, "
                f"reference currency is {reference}"
            )
            return ExchangeRateMemo(reference_currency=reference)
        return rates

    async def _resolve_rates(
            self,
            holdings: list[Holding],
            reference_currency: str | None,
            rates: ExchangeRateMemo | None,
    ) -> ExchangeRateMemo:
        """
        Extend the memo with a rate for every currency of holdings.

        Currencies already in the memo (including failed ones) and the
        reference currency itself are not looked up.
        """
        memo = self._initial_memo(reference_currency, rates)

        missing = sorted({
            h.currency.strip().upper()
            for h in holdings
            if not memo.is_known(h.currency)
        })
        if not missing:
            return memo

        logger.debug(f"Resolving exchange rates for {missing} → {memo.reference_currency}")
        results = await asyncio.gather(*[
            self._gateway.get_exchange_rate(currency, memo.reference_currency)
            for currency in missing
        ])

        resolved = dict(zip(missing, results))
        for currency, rate in resolved.items():
            if rate is None:
                logger.warning(f"Exchange rate {currency}/{memo.reference_currency} unavailable")

        return memo.with_rates(resolved)

    async def _fetch_price_series(
            self,
            holdings: list[Holding],
            window_start: date,
            end_date: date,
    ) -> dict[str, list[PricePoint]]:
        """
        Closes for every distinct ticker, fetched concurrently.

        Each ticker is fetched from the lookback period before the window
        start. A ticker with no close on or before the window start but
        held since earlier is fetched again from its earliest purchase
        date, so the first window days forward-fill from the last real
        close instead of falling back to the purchase price.
        """
        fetch_start = window_start - timedelta(days=self._history_lookback_days)

        earliest_purchase: dict[str, date | None] = {}
        for h in holdings:
            if not (h.is_security and h.is_well_formed):
                continue
            known = earliest_purchase.get(h.ticker)
            if h.purchase_date is not None and (known is None or h.purchase_date < known):
                earliest_purchase[h.ticker] = h.purchase_date
            else:
                earliest_purchase.setdefault(h.ticker, None)

        tickers = sorted(earliest_purchase)
        if not tickers:
            return {}

        results = await asyncio.gather(*[
            self._fetch_ticker_series(
                ticker, fetch_start, window_start, end_date, earliest_purchase[ticker]
            )
            for ticker in tickers
        ])

        series = dict(zip(tickers, results))
        for ticker, points in series.items():
            logger.debug(f"{ticker}: {len(points)} closes up to {end_date}")
        return series

    async def _fetch_ticker_series(
            self,
            ticker: str,
            fetch_start: date,
            window_start: date,
            end_date: date,
            purchased_on: date | None,
    ) -> list[PricePoint]:
        points = await self._gateway.get_historical_data(ticker, fetch_start, end_date)

        if purchased_on is None or purchased_on >= fetch_start:
            return points
        if any(p.date <= window_start for p in points):
            return points

        logger.debug(
            f"{ticker}: no close between {fetch_start} and {window_start}, "
            f"fetching from purchase date {purchased_on}"
        )
        backfilled = await self._gateway.get_historical_data(ticker, purchased_on, end_date)
        return backfilled or points

    @staticmethod
    def _parse_grouping(group_by: AllocationGrouping | str) -> AllocationGrouping:
        if isinstance(group_by, AllocationGrouping):
            return group_by
        try:
            return AllocationGrouping(str(group_by).strip().lower())
        except ValueError:
            raise InvalidGroupingError(group_by)
