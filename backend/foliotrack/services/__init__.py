# backend/foliotrack/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of presentation (no HTTP, no chart rendering)
- Raise domain-specific exceptions only for contract violations
- Receive collaborators (gateway, store) via constructor injection
- Are easily testable with fakes that satisfy services/protocols.py

Usage:
    from foliotrack.services import ValuationEngine
    from foliotrack.services import HoldingsService, HoldingsStore
    from foliotrack.services import QuoteGateway

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants
    ├── protocols.py                 # Service interfaces (Protocol classes)
    ├── holdings_store.py            # SQLAlchemy holdings store
    ├── holdings_service.py          # Add/edit/refresh flows
    ├── market_data/                 # Market data package
    │   ├── base.py                  # Abstract provider interface
    │   ├── yahoo.py                 # Yahoo Finance implementation
    │   ├── quotes.py                # Quote normalization
    │   └── gateway.py               # Async never-raising gateway
    └── valuation/                   # Valuation engine
        ├── service.py               # Main valuation orchestrator
        ├── types.py                 # Valuation data types
        ├── calculators.py           # Point-in-time calculations
        └── history_calculator.py    # Time series calculations
"""

# Exceptions
from foliotrack.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidWindowError,
    InvalidGroupingError,
    HoldingCategoryMismatchError,
    NotFoundError,
    HoldingNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    FXRateError,
    FXRateNotFoundError,
)
# Market Data
from foliotrack.services.market_data import (
    QuoteProvider,
    YahooFinanceProvider,
    QuoteGateway,
    Quote,
    PricePoint,
    SecurityMatch,
)
# Valuation Engine
from foliotrack.services.valuation import ValuationEngine
# Holdings
from foliotrack.services.holdings_store import HoldingsStore
from foliotrack.services.holdings_service import HoldingsService, RefreshResult

__all__ = [
    # ==========================================================================
    # Services
    # ==========================================================================
    "ValuationEngine",
    "HoldingsStore",
    "HoldingsService",
    "RefreshResult",
    # Market Data
    "QuoteProvider",
    "YahooFinanceProvider",
    "QuoteGateway",
    "Quote",
    "PricePoint",
    "SecurityMatch",

    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "ServiceError",
    "ValidationError",
    "InvalidWindowError",
    "InvalidGroupingError",
    "HoldingCategoryMismatchError",
    "NotFoundError",
    "HoldingNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "FXRateError",
    "FXRateNotFoundError",
]
