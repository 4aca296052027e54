# backend/foliotrack/services/valuation/types.py
"""
Data types for the Valuation Engine.

These dataclasses are the engine's inputs and view-model outputs. They are
NOT ORM models (see foliotrack/models.py) and NOT input schemas (see
foliotrack/schemas/holdings.py).

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for valuation dates
- Optional fields use None, not sentinel values
- Warnings accumulate for data quality tracking

Type Hierarchy:
    Holding              - One position (engine input)
    ExchangeRateMemo     - Per-pass currency → reference multipliers
    PerformanceResult    - Initial/current pair with derived deltas
    HoldingPerformance   - Per-holding snapshot line
    PortfolioSnapshot    - Present-moment totals
    HistoryPoint         - Single point in time series
    PortfolioHistory     - Reconstructed time series
    AllocationSlice      - One group of the allocation breakdown
    PortfolioAllocation  - Allocation breakdown result
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping

from foliotrack.models import HoldingCategory, SecurityType


# =============================================================================
# ENUMS
# =============================================================================

class HistoryWindow(str, enum.Enum):
    """Trailing windows selectable for the history chart."""
    ONE_MONTH = "1M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    YEAR_TO_DATE = "YTD"
    MAX = "MAX"


class AllocationGrouping(str, enum.Enum):
    """How the allocation breakdown groups holdings."""
    CATEGORY = "category"
    HOLDING = "holding"


class AllocationGroup(str, enum.Enum):
    """Chart groups used by the category breakdown."""
    STOCK = "STOCK"
    ETF = "ETF"
    CASH_ACCOUNT = "CASH_ACCOUNT"


class Trend(str, enum.Enum):
    """Display direction of a performance figure."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


@dataclass(frozen=True)
class GroupStyle:
    """Display label and chart color of an allocation group."""
    label: str
    color: str


CATEGORY_STYLES: dict[AllocationGroup, GroupStyle] = {
    AllocationGroup.CASH_ACCOUNT: GroupStyle(label="Bank accounts", color="hsl(var(--chart-1))"),
    AllocationGroup.STOCK: GroupStyle(label="Stocks", color="hsl(var(--chart-2))"),
    AllocationGroup.ETF: GroupStyle(label="ETFs", color="hsl(var(--chart-3))"),
}

# Colors cycled through when the breakdown is per holding
HOLDING_PALETTE: tuple[str, ...] = (
    "hsl(var(--chart-1))",
    "hsl(var(--chart-2))",
    "hsl(var(--chart-3))",
    "hsl(var(--chart-4))",
    "hsl(var(--chart-5))",
)


# =============================================================================
# HOLDING (engine input)
# =============================================================================

@dataclass(frozen=True)
class Holding:
    """
    A position in the portfolio, as consumed by the engine.

    Attributes:
        id: Opaque identifier assigned by the holdings store
        name: Display label
        category: SECURITY or CASH_ACCOUNT
        currency: Currency every monetary field is denominated in
        initial_value: Value at acquisition (quantity × purchase_price for
            securities, deposited balance for cash accounts)
        current_value: Latest known value in the holding's own currency
        ticker: Quote lookup key (securities only)
        security_type: STOCK or ETF (securities only)
        quantity: Units held (securities only)
        purchase_price: Per-unit price at acquisition (securities only)
        purchase_date: Lower bound of the holding's contribution to history
        daily_change: Last day-over-day per-unit price move
        daily_change_percent: Same move as a fraction (0.025 == 2.5%)
    """

    id: str
    name: str
    category: HoldingCategory
    currency: str
    initial_value: Decimal
    current_value: Decimal
    ticker: str | None = None
    security_type: SecurityType | None = None
    quantity: Decimal | None = None
    purchase_price: Decimal | None = None
    purchase_date: date | None = None
    daily_change: Decimal | None = None
    daily_change_percent: Decimal | None = None

    @property
    def is_security(self) -> bool:
        return self.category == HoldingCategory.SECURITY

    @property
    def is_cash_account(self) -> bool:
        return self.category == HoldingCategory.CASH_ACCOUNT

    @property
    def is_well_formed(self) -> bool:
        """
        False for security records missing the fields history needs.

        Such records are a data-integrity bug upstream; the engine skips
        them in the history rather than failing the whole pass.
        """
        if not self.is_security:
            return True
        return (
            bool(self.ticker)
            and self.quantity is not None
            and self.quantity > 0
            and self.purchase_price is not None
            and self.purchase_price > 0
        )

    @property
    def allocation_group(self) -> AllocationGroup:
        """Category-breakdown group; securities without a type count as stocks."""
        if self.is_cash_account:
            return AllocationGroup.CASH_ACCOUNT
        if self.security_type == SecurityType.ETF:
            return AllocationGroup.ETF
        return AllocationGroup.STOCK


# =============================================================================
# EXCHANGE RATE MEMO
# =============================================================================

@dataclass(frozen=True)
class ExchangeRateMemo:
    """
    Multipliers converting each currency into the reference currency.

    Resolved once per currency per computation pass. The memo is a value:
    engine calls accept one and return an extended copy, so a caller can
    reuse it across the calls of one pass and drop it afterwards.

    A currency mapped to None was looked up and could not be resolved;
    it is not retried within the pass.

    Attributes:
        reference_currency: Currency every rate converts into
        rates: currency → multiplier (or None if unresolvable)
    """

    reference_currency: str
    rates: Mapping[str, Decimal | None] = field(default_factory=dict)

    def rate_for(self, currency: str) -> Decimal | None:
        """Multiplier for currency; 1 for the reference currency itself."""
        code = currency.strip().upper()
        if code == self.reference_currency:
            return Decimal("1")
        return self.rates.get(code)

    def is_known(self, currency: str) -> bool:
        """True if the currency needs no lookup in this pass."""
        code = currency.strip().upper()
        return code == self.reference_currency or code in self.rates

    def with_rates(self, new_rates: Mapping[str, Decimal | None]) -> ExchangeRateMemo:
        """Return a copy extended with new lookups."""
        merged = dict(self.rates)
        merged.update(new_rates)
        return ExchangeRateMemo(reference_currency=self.reference_currency, rates=merged)

    @property
    def unresolved_currencies(self) -> list[str]:
        return sorted(code for code, rate in self.rates.items() if rate is None)


# =============================================================================
# PERFORMANCE
# =============================================================================

@dataclass(frozen=True)
class PerformanceResult:
    """
    Performance derived from an (initial, current) value pair.

    Attributes:
        initial_value: Starting value
        current_value: Ending (or hovered) value
        absolute_change: current - initial
        performance_percent: Percent change; 0 when initial is 0
        trend: UP / DOWN / FLAT after the dead-band
    """

    initial_value: Decimal
    current_value: Decimal
    absolute_change: Decimal
    performance_percent: Decimal
    trend: Trend


@dataclass(frozen=True)
class HoldingPerformance:
    """
    Snapshot line for one holding.

    Amounts in the holding's own currency drive the since-purchase
    performance; the reference-currency value is None when the holding's
    currency could not be converted.
    """

    holding_id: str
    name: str
    category: HoldingCategory
    group: AllocationGroup
    currency: str
    performance: PerformanceResult
    current_value_reference: Decimal | None
    initial_value_reference: Decimal | None
    daily_change: Decimal | None = None
    daily_change_percent: Decimal | None = None

    @property
    def included_in_total(self) -> bool:
        return self.current_value_reference is not None


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass
class PortfolioSnapshot:
    """
    Present-moment valuation of a set of holdings.

    Attributes:
        reference_currency: Currency of every total
        total_value: Σ current_value × rate over convertible holdings
        total_initial_value: Σ initial_value × rate over the same holdings
        performance: Aggregate since-purchase performance
        holdings: One line per input holding (excluded ones included,
            with reference values None)
        excluded_holding_ids: Holdings left out of the totals
        rates: Exchange-rate memo after this pass
        warnings: Data quality warnings
    """

    reference_currency: str
    total_value: Decimal
    total_initial_value: Decimal
    performance: PerformanceResult
    holdings: list[HoldingPerformance]
    excluded_holding_ids: list[str]
    rates: ExchangeRateMemo
    warnings: list[str] = field(default_factory=list)

    @property
    def has_complete_data(self) -> bool:
        """True if every holding was converted."""
        return not self.excluded_holding_ids


# =============================================================================
# HISTORY (Time series for charts)
# =============================================================================

@dataclass(frozen=True)
class HistoryPoint:
    """Portfolio value in the reference currency on one calendar day."""

    date: date
    value: Decimal


@dataclass
class PortfolioHistory:
    """
    Reconstructed portfolio value series.

    Attributes:
        reference_currency: Currency of every point
        window: Window the series was built for
        start_date: Resolved window start
        end_date: Last date (today)
        points: Ascending, one per day with a nonzero value
        is_fallback: True when the flat yesterday/today series was used
        rates: Exchange-rate memo after this pass
        warnings: Data quality warnings

    Note:
        Empty only when there are no holdings.
    """

    reference_currency: str
    window: HistoryWindow
    start_date: date
    end_date: date
    points: list[HistoryPoint]
    rates: ExchangeRateMemo
    is_fallback: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def initial_value(self) -> Decimal:
        """First value of the series (0 if empty)."""
        return self.points[0].value if self.points else Decimal("0")

    @property
    def final_value(self) -> Decimal:
        """Last value of the series (0 if empty)."""
        return self.points[-1].value if self.points else Decimal("0")

    @property
    def total_points(self) -> int:
        return len(self.points)


# =============================================================================
# ALLOCATION
# =============================================================================

@dataclass(frozen=True)
class AllocationSlice:
    """
    One group of the allocation breakdown.

    Attributes:
        group: AllocationGroup value (by category) or holding id (by holding)
        label: Display label
        color: Chart color
        value: Sum of member values in the reference currency
        share: value / allocation total, as a fraction
    """

    group: str
    label: str
    color: str
    value: Decimal
    share: Decimal


@dataclass
class PortfolioAllocation:
    """
    Allocation breakdown, largest slice first.

    Attributes:
        reference_currency: Currency of every value
        group_by: Grouping used
        slices: Nonzero groups sorted by value descending
        total_value: Σ slice values (equals the snapshot total)
        rates: Exchange-rate memo after this pass
        warnings: Data quality warnings
    """

    reference_currency: str
    group_by: AllocationGrouping
    slices: list[AllocationSlice]
    total_value: Decimal
    rates: ExchangeRateMemo
    warnings: list[str] = field(default_factory=list)
