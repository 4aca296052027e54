# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database fixtures (in-memory SQLite)
- A fake async quote gateway
- Holding factories
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date
from decimal import Decimal
from typing import Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foliotrack.models import Base, HoldingCategory, SecurityType
from foliotrack.services.market_data.base import PricePoint, Quote, SecurityMatch
from foliotrack.services.valuation.types import Holding

# Fixed "today" for every date-dependent test
TODAY = date(2024, 6, 15)


@pytest.fixture
def today() -> date:
    return TODAY


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


# =============================================================================
# FAKE QUOTE GATEWAY
# =============================================================================

class FakeQuoteGateway:
    """
    In-memory implementation of QuoteGatewayProtocol.

    Configure quotes, closes and rates per key; anything unconfigured
    behaves like an upstream failure (None / []). Asking for a rate between
    identical currencies fails the test, since callers must short-circuit it.
    """

    def __init__(self):
        self.quotes: dict[str, Quote] = {}
        self.histories: dict[str, list[PricePoint]] = {}
        self.rates: dict[tuple[str, str], Decimal] = {}
        self.search_results: list[SecurityMatch] = []
        self.calls: list[tuple] = []

    async def get_quote(self, ticker: str) -> Quote | None:
        self.calls.append(("quote", ticker))
        return self.quotes.get(ticker)

    async def get_quotes(self, tickers) -> dict[str, Quote | None]:
        symbols = sorted(set(tickers))
        self.calls.append(("quotes", tuple(symbols)))
        return {s: await self.get_quote(s) for s in symbols}

    async def get_historical_data(self, ticker, start_date, end_date=None) -> list[PricePoint]:
        self.calls.append(("history", ticker, start_date, end_date))
        return [
            p for p in self.histories.get(ticker, [])
            if p.date >= start_date and (end_date is None or p.date <= end_date)
        ]

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        assert from_currency != to_currency, "same-currency rate must not reach the gateway"
        self.calls.append(("rate", from_currency, to_currency))
        return self.rates.get((from_currency, to_currency))

    async def search_securities(self, query: str) -> list[SecurityMatch]:
        self.calls.append(("search", query))
        return list(self.search_results)

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


@pytest.fixture
def gateway() -> FakeQuoteGateway:
    return FakeQuoteGateway()


# =============================================================================
# HOLDING FACTORIES
# =============================================================================

@pytest.fixture
def make_security() -> Callable[..., Holding]:
    """Factory for security holdings; initial_value = quantity × purchase_price."""
    counter = {"n": 0}

    def _make(
            ticker: str = "VWCE.DE",
            quantity: str = "10",
            purchase_price: str = "100",
            current_value: str | None = None,
            currency: str = "EUR",
            purchase_date: date | None = date(2024, 1, 2),
            security_type: SecurityType = SecurityType.STOCK,
            name: str | None = None,
            **overrides,
    ) -> Holding:
        counter["n"] += 1
        qty = Decimal(quantity)
        price = Decimal(purchase_price)
        fields = dict(
            id=f"sec-{counter['n']}",
            name=name or ticker,
            category=HoldingCategory.SECURITY,
            currency=currency,
            initial_value=qty * price,
            current_value=Decimal(current_value) if current_value is not None else qty * price,
            ticker=ticker,
            security_type=security_type,
            quantity=qty,
            purchase_price=price,
            purchase_date=purchase_date,
        )
        fields.update(overrides)
        return Holding(**fields)

    return _make


@pytest.fixture
def make_cash() -> Callable[..., Holding]:
    """Factory for cash-account holdings."""
    counter = {"n": 0}

    def _make(
            balance: str = "5000",
            currency: str = "EUR",
            purchase_date: date | None = date(2024, 1, 2),
            name: str = "Savings",
    ) -> Holding:
        counter["n"] += 1
        return Holding(
            id=f"cash-{counter['n']}",
            name=name,
            category=HoldingCategory.CASH_ACCOUNT,
            currency=currency,
            initial_value=Decimal(balance),
            current_value=Decimal(balance),
            purchase_date=purchase_date,
        )

    return _make


def closes(ticker_points: dict[date, str]) -> list[PricePoint]:
    """Build PricePoints from {date: "close"}."""
    return [PricePoint(date=d, close=Decimal(c)) for d, c in sorted(ticker_points.items())]


@pytest.fixture
def make_closes() -> Callable[[dict[date, str]], list[PricePoint]]:
    return closes
