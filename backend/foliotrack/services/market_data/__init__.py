# backend/foliotrack/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract interface for quote providers (base.py)
- Yahoo Finance implementation (yahoo.py)
- Quote normalization and validation (quotes.py)
- Async, never-raising gateway used by the engine (gateway.py)

Usage:
    from foliotrack.services.market_data import QuoteGateway

    gateway = QuoteGateway()
    quote = await gateway.get_quote("AAPL")

Architecture:
    QuoteProvider (ABC, sync, raises)
    └── YahooFinanceProvider (concrete)

    QuoteGateway (async, never raises)
    └── Runs provider calls in worker threads
    └── Falls back from the primary to the secondary quote path
"""

from foliotrack.services.market_data.base import (
    QuoteProvider,
    RawQuote,
    Quote,
    PricePoint,
    SecurityMatch,
)
from foliotrack.services.market_data.yahoo import YahooFinanceProvider
from foliotrack.services.market_data.gateway import QuoteGateway

__all__ = [
    # Interface and data classes
    "QuoteProvider",
    "RawQuote",
    "Quote",
    "PricePoint",
    "SecurityMatch",
    # Implementations
    "YahooFinanceProvider",
    "QuoteGateway",
]
