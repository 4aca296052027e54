# backend/foliotrack/services/valuation/history_calculator.py
"""
History Calculator for time series portfolio valuation.

Reconstructs the portfolio value for every calendar day of a window from
sparse daily closes:

1. Resolve the window start (1M, 6M, 1Y, YTD, MAX)
2. Receive all price series and exchange rates already fetched
3. Iterate through days using in-memory lookups

Per day d and holding h held on d (purchase_date <= d, or no date):
    cash account → initial_value
    security     → price(ticker, d) × quantity, where price is the close on
                   d, else the last close before d (forward-fill), else the
                   holding's purchase_price
    converted with the pass's exchange rate

Days whose aggregate is 0 are dropped. If no security has any price
history (including portfolios with no securities at all), the calculator
reports that the flat fallback series should be used instead.

Design Principles:
- No network calls: the engine fetches everything concurrently upfront
- Graceful handling of missing data (skip + warning, never raise)
- Reuses CurrencyConverter for the same rounding as the snapshot
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from foliotrack.services.constants import MONEY_QUANTUM
from foliotrack.services.exceptions import InvalidWindowError
from foliotrack.services.market_data.base import PricePoint
from foliotrack.services.valuation.calculators import CurrencyConverter
from foliotrack.services.valuation.types import (
    ExchangeRateMemo,
    HistoryPoint,
    HistoryWindow,
    Holding,
)
from foliotrack.utils.date_utils import iter_days, start_of_year, subtract_months

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

_WINDOW_MONTHS: dict[HistoryWindow, int] = {
    HistoryWindow.ONE_MONTH: 1,
    HistoryWindow.SIX_MONTHS: 6,
    HistoryWindow.ONE_YEAR: 12,
}


def parse_window(window: HistoryWindow | str) -> HistoryWindow:
    """
    Coerce a window value, case-insensitively.

    Raises:
        InvalidWindowError: If window is not one of 1M, 6M, 1Y, YTD, MAX
    """
    if isinstance(window, HistoryWindow):
        return window
    try:
        return HistoryWindow(str(window).strip().upper())
    except ValueError:
        raise InvalidWindowError(window)


def resolve_window_start(
        window: HistoryWindow,
        today: date,
        holdings: list[Holding],
) -> date:
    """
    First day of the window.

    MAX starts at the earliest purchase date among holdings, or yesterday
    when no holding has a purchase date.
    """
    if window in _WINDOW_MONTHS:
        return subtract_months(today, _WINDOW_MONTHS[window])
    if window == HistoryWindow.YEAR_TO_DATE:
        return start_of_year(today)

    purchase_dates = [h.purchase_date for h in holdings if h.purchase_date is not None]
    if not purchase_dates:
        return today - timedelta(days=1)
    return min(purchase_dates)


class PriceSeries:
    """
    Daily closes of one ticker with forward-fill lookup.

    Lookup is O(log n) via bisect over the sorted dates.
    """

    def __init__(self, points: list[PricePoint]) -> None:
        by_date = {p.date: p.close for p in points}
        self._dates = sorted(by_date)
        self._closes = [by_date[d] for d in self._dates]

    def __len__(self) -> int:
        return len(self._dates)

    def price_on(self, day: date) -> Decimal | None:
        """Close on day, else the most recent close before it, else None."""
        index = bisect.bisect_right(self._dates, day) - 1
        if index < 0:
            return None
        return self._closes[index]


@dataclass
class HistoryReconstruction:
    """
    Output of HistoryCalculator.

    Attributes:
        points: Ascending nonzero daily values
        needs_fallback: True when the flat fallback series must be used
        warnings: Data quality warnings
    """

    points: list[HistoryPoint] = field(default_factory=list)
    needs_fallback: bool = False
    warnings: list[str] = field(default_factory=list)


class HistoryCalculator:
    """
    Calculates the portfolio value time series for a window.

    Usage:
        calc = HistoryCalculator()
        result = calc.calculate(
            holdings, start, today,
            price_series={"VWCE.DE": [...]},
            rates=memo,
        )
    """

    def calculate(
            self,
            holdings: list[Holding],
            start_date: date,
            end_date: date,
            price_series: dict[str, list[PricePoint]],
            rates: ExchangeRateMemo,
    ) -> HistoryReconstruction:
        """
        Reconstruct the daily series.

        Args:
            holdings: Holdings to value
            start_date: Window start (inclusive)
            end_date: Last day, normally today (inclusive)
            price_series: ticker → closes (missing or [] when unavailable)
            rates: Memo holding a rate for every currency of holdings

        Returns:
            HistoryReconstruction
        """
        result = HistoryReconstruction()
        converter = CurrencyConverter(rates)

        series = {
            ticker: PriceSeries(points)
            for ticker, points in price_series.items()
            if points
        }

        valued: list[Holding] = []
        for holding in holdings:
            if not holding.is_well_formed:
                message = f"Security '{holding.name}' ({holding.id}) is missing ticker, quantity or price; skipped"
                logger.warning(message)
                result.warnings.append(message)
                continue
            if converter.rate_for(holding) is None:
                message = converter.unresolved_warning(holding)
                logger.warning(message)
                result.warnings.append(message)
                continue
            valued.append(holding)

        has_price_history = any(
            h.is_security and h.ticker in series for h in valued
        )
        if not has_price_history:
            logger.info("No price history for any security; using flat series")
            result.needs_fallback = True
            return result

        for day in iter_days(start_date, end_date):
            total = ZERO
            for holding in valued:
                if holding.purchase_date is not None and holding.purchase_date > day:
                    continue
                total += self._value_on(holding, day, series, converter)

            if total != 0:
                result.points.append(HistoryPoint(date=day, value=total.quantize(MONEY_QUANTUM)))

        if not result.points:
            result.needs_fallback = True

        logger.debug(
            f"Reconstructed {len(result.points)} points "
            f"from {start_date} to {end_date} for {len(valued)} holdings"
        )
        return result

    def _value_on(
            self,
            holding: Holding,
            day: date,
            series: dict[str, PriceSeries],
            converter: CurrencyConverter,
    ) -> Decimal:
        """Contribution of one holding on one day, in the reference currency."""
        if holding.is_cash_account:
            amount = holding.initial_value
        else:
            ticker_series = series.get(holding.ticker)
            price = ticker_series.price_on(day) if ticker_series is not None else None
            if price is None:
                price = holding.purchase_price
            amount = price * holding.quantity

        return converter.convert(amount, holding) or ZERO
