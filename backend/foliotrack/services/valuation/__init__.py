# backend/foliotrack/services/valuation/__init__.py
"""
Valuation Engine package.

Provides portfolio valuation from holdings and live market data:
- Snapshot: present-moment totals in the reference currency
- History: daily value series with forward-filled prices
- Allocation: value breakdown by category or by holding
- Performance: absolute/percent deltas with a flat dead-band

Usage:
    from foliotrack.services.valuation import ValuationEngine

    engine = ValuationEngine()
    snapshot = await engine.compute_snapshot(holdings, "EUR")
"""

from foliotrack.services.valuation.service import ValuationEngine
from foliotrack.services.valuation.calculators import (
    AllocationCalculator,
    CurrencyConverter,
    PerformanceCalculator,
    SnapshotCalculator,
)
from foliotrack.services.valuation.history_calculator import (
    HistoryCalculator,
    PriceSeries,
    parse_window,
    resolve_window_start,
)
from foliotrack.services.valuation.types import (
    AllocationGroup,
    AllocationGrouping,
    AllocationSlice,
    CATEGORY_STYLES,
    ExchangeRateMemo,
    HistoryPoint,
    HistoryWindow,
    Holding,
    HoldingPerformance,
    PerformanceResult,
    PortfolioAllocation,
    PortfolioHistory,
    PortfolioSnapshot,
    Trend,
)

__all__ = [
    # Main service
    "ValuationEngine",
    # Calculators
    "AllocationCalculator",
    "CurrencyConverter",
    "PerformanceCalculator",
    "SnapshotCalculator",
    "HistoryCalculator",
    "PriceSeries",
    "parse_window",
    "resolve_window_start",
    # Types
    "AllocationGroup",
    "AllocationGrouping",
    "AllocationSlice",
    "CATEGORY_STYLES",
    "ExchangeRateMemo",
    "HistoryPoint",
    "HistoryWindow",
    "Holding",
    "HoldingPerformance",
    "PerformanceResult",
    "PortfolioAllocation",
    "PortfolioHistory",
    "PortfolioSnapshot",
    "Trend",
]
