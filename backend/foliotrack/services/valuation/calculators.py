# backend/foliotrack/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator follows the Single Responsibility Principle:
- PerformanceCalculator: Deltas and trend from an (initial, current) pair
- CurrencyConverter: Holding amounts → reference currency via the rate memo
- SnapshotCalculator: Present-moment totals and per-holding lines
- AllocationCalculator: Value breakdown by category or by holding

Design Principles:
- Stateless (no instance state, pure functions)
- No network calls: rates arrive already resolved in an ExchangeRateMemo
- Returns structured result objects
- Uses Decimal for ALL financial calculations

Usage:
    snapshot = SnapshotCalculator().calculate(holdings, rates)
    allocation = AllocationCalculator().calculate(
        holdings, rates, AllocationGrouping.CATEGORY
    )
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal

from foliotrack.services.constants import (
    MONEY_QUANTUM,
    PERCENT_QUANTUM,
    TREND_DEAD_BAND,
)
from foliotrack.services.valuation.types import (
    AllocationGrouping,
    AllocationSlice,
    CATEGORY_STYLES,
    ExchangeRateMemo,
    HOLDING_PALETTE,
    Holding,
    HoldingPerformance,
    PerformanceResult,
    PortfolioAllocation,
    PortfolioSnapshot,
    Trend,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# =============================================================================
# PERFORMANCE CALCULATOR
# =============================================================================

class PerformanceCalculator:
    """
    Derives absolute change, percent change and trend.

    Formulas:
        absolute_change = current - initial
        performance_percent = 0 if initial == 0
                              else (current - initial) / initial × 100

    Trend:
        performance_percent strictly inside (-0.01, 0.01) is FLAT,
        at or above 0.01 is UP, at or below -0.01 is DOWN.
        The trend is classified on the unrounded percent; only the
        reported figure is rounded to 4 places.
    """

    def calculate(self, initial_value: Decimal, current_value: Decimal) -> PerformanceResult:
        absolute_change = current_value - initial_value
        exact_percent = self._exact_percent(initial_value, current_value)

        return PerformanceResult(
            initial_value=initial_value,
            current_value=current_value,
            absolute_change=absolute_change,
            performance_percent=exact_percent.quantize(PERCENT_QUANTUM),
            trend=self.classify_trend(exact_percent),
        )

    @staticmethod
    def _exact_percent(initial_value: Decimal, current_value: Decimal) -> Decimal:
        """Unrounded percent change, 0 when there is no initial value."""
        if initial_value == 0:
            return ZERO
        return (current_value - initial_value) / initial_value * Decimal("100")

    @staticmethod
    def classify_trend(performance_percent: Decimal) -> Trend:
        if performance_percent >= TREND_DEAD_BAND:
            return Trend.UP
        if performance_percent <= -TREND_DEAD_BAND:
            return Trend.DOWN
        return Trend.FLAT


# =============================================================================
# CURRENCY CONVERTER
# =============================================================================

class CurrencyConverter:
    """
    Converts holding amounts into the reference currency.

    Converted amounts are rounded to cents per holding, so any sum of them
    is exact and totals computed from the same holdings always agree.
    """

    def __init__(self, rates: ExchangeRateMemo) -> None:
        self._rates = rates

    def rate_for(self, holding: Holding) -> Decimal | None:
        return self._rates.rate_for(holding.currency)

    def convert(self, amount: Decimal, holding: Holding) -> Decimal | None:
        """amount × rate, or None if the holding's currency is unresolved."""
        rate = self.rate_for(holding)
        if rate is None:
            return None
        return (amount * rate).quantize(MONEY_QUANTUM)

    def unresolved_warning(self, holding: Holding) -> str:
        return (
            f"No exchange rate {holding.currency}/{self._rates.reference_currency}: "
            f"'{holding.name}' ({holding.id}) excluded from totals"
        )


# =============================================================================
# SNAPSHOT CALCULATOR
# =============================================================================

class SnapshotCalculator:
    """
    Calculates the present-moment portfolio value.

    Total:
        Σ current_value × rate(currency → reference) over holdings whose
        currency resolved. Holdings with an unresolved rate are listed
        with reference values None and excluded from every total; they
        are never converted at rate 1.

    Per holding:
        Since-purchase performance in the holding's own currency.
    """

    def __init__(self) -> None:
        self._performance_calc = PerformanceCalculator()

    def calculate(
            self,
            holdings: list[Holding],
            rates: ExchangeRateMemo,
    ) -> PortfolioSnapshot:
        converter = CurrencyConverter(rates)
        lines: list[HoldingPerformance] = []
        excluded: list[str] = []
        warnings: list[str] = []

        total_value = ZERO
        total_initial = ZERO

        for holding in holdings:
            current_ref = converter.convert(holding.current_value, holding)
            initial_ref = converter.convert(holding.initial_value, holding)

            if current_ref is None or initial_ref is None:
                message = converter.unresolved_warning(holding)
                logger.warning(message)
                warnings.append(message)
                excluded.append(holding.id)
            else:
                total_value += current_ref
                total_initial += initial_ref

            lines.append(HoldingPerformance(
                holding_id=holding.id,
                name=holding.name,
                category=holding.category,
                group=holding.allocation_group,
                currency=holding.currency,
                performance=self._performance_calc.calculate(
                    holding.initial_value, holding.current_value
                ),
                current_value_reference=current_ref,
                initial_value_reference=initial_ref,
                daily_change=holding.daily_change,
                daily_change_percent=holding.daily_change_percent,
            ))

        return PortfolioSnapshot(
            reference_currency=rates.reference_currency,
            total_value=total_value.quantize(MONEY_QUANTUM),
            total_initial_value=total_initial.quantize(MONEY_QUANTUM),
            performance=self._performance_calc.calculate(total_initial, total_value),
            holdings=lines,
            excluded_holding_ids=excluded,
            rates=rates,
            warnings=warnings,
        )


# =============================================================================
# ALLOCATION CALCULATOR
# =============================================================================

class AllocationCalculator:
    """
    Breaks the current value down by category or by holding.

    Rules:
        - Values are current_value converted to the reference currency
        - Holdings with an unresolved rate are excluded (and warned about)
        - Groups whose value is 0 are dropped
        - Slices are sorted by value, largest first (ties by label)
        - Σ slice values equals the snapshot total for the same inputs
    """

    def calculate(
            self,
            holdings: list[Holding],
            rates: ExchangeRateMemo,
            group_by: AllocationGrouping,
    ) -> PortfolioAllocation:
        converter = CurrencyConverter(rates)
        warnings: list[str] = []

        values: dict[str, Decimal] = defaultdict(lambda: ZERO)
        labels: dict[str, str] = {}
        colors: dict[str, str] = {}

        for holding in holdings:
            value = converter.convert(holding.current_value, holding)
            if value is None:
                message = converter.unresolved_warning(holding)
                logger.warning(message)
                warnings.append(message)
                continue

            if group_by == AllocationGrouping.CATEGORY:
                group = holding.allocation_group
                key = group.value
                style = CATEGORY_STYLES[group]
                labels[key] = style.label
                colors[key] = style.color
            else:
                key = holding.id
                labels[key] = holding.name

            values[key] += value

        total = sum(values.values(), ZERO)
        ordered = sorted(
            (key for key, value in values.items() if value != 0),
            key=lambda k: (-values[k], labels[k]),
        )

        slices = []
        for index, key in enumerate(ordered):
            color = colors.get(key) or HOLDING_PALETTE[index % len(HOLDING_PALETTE)]
            slices.append(AllocationSlice(
                group=key,
                label=labels[key],
                color=color,
                value=values[key],
                share=(values[key] / total).quantize(PERCENT_QUANTUM),
            ))

        return PortfolioAllocation(
            reference_currency=rates.reference_currency,
            group_by=group_by,
            slices=slices,
            total_value=total.quantize(MONEY_QUANTUM),
            rates=rates,
            warnings=warnings,
        )
