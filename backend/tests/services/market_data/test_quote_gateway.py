# backend/tests/services/market_data/test_quote_gateway.py
"""
Tests for the async QuoteGateway.

This module tests:
- Primary → secondary → None quote fallback
- Synthetic previous close from history
- Exchange rates: same-currency short-circuit, inverse pair, failures
- Search query length guard
- That no method ever raises
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from foliotrack.services.exceptions import (
    FXRateNotFoundError,
    ProviderUnavailableError,
    TickerNotFoundError,
)
from foliotrack.services.market_data.base import (
    PricePoint,
    QuoteProvider,
    RawQuote,
    SecurityMatch,
)
from foliotrack.services.market_data.gateway import QuoteGateway

TODAY = date(2024, 6, 15)


# =============================================================================
# MOCK QUOTE PROVIDER
# =============================================================================

class MockQuoteProvider(QuoteProvider):
    """
    Mock implementation of QuoteProvider for testing.

    Each response table maps a key to a return value or to an exception
    instance that will be raised.
    """

    def __init__(self):
        self.info: dict[str, object] = {}
        self.fast: dict[str, object] = {}
        self.history: dict[str, object] = {}
        self.fx: dict[tuple[str, str], object] = {}
        self.search_results: list[SecurityMatch] | Exception = []
        self.calls: list[tuple] = []

    @property
    def name(self) -> str:
        return "mock"

    @staticmethod
    def _answer(value, default_error):
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise default_error
        return value

    def get_quote_info(self, symbol):
        self.calls.append(("info", symbol))
        return self._answer(self.info.get(symbol), TickerNotFoundError(symbol, self.name))

    def get_fast_quote(self, symbol):
        self.calls.append(("fast", symbol))
        return self._answer(self.fast.get(symbol), TickerNotFoundError(symbol, self.name))

    def get_price_history(self, symbol, start_date, end_date):
        self.calls.append(("history", symbol, start_date, end_date))
        value = self.history.get(symbol, [])
        if isinstance(value, Exception):
            raise value
        return value

    def get_fx_rate(self, base_currency, quote_currency):
        self.calls.append(("fx", base_currency, quote_currency))
        return self._answer(
            self.fx.get((base_currency, quote_currency)),
            FXRateNotFoundError(base_currency, quote_currency),
        )

    def search(self, query):
        self.calls.append(("search", query))
        if isinstance(self.search_results, Exception):
            raise self.search_results
        return self.search_results


@pytest.fixture
def provider():
    return MockQuoteProvider()


@pytest.fixture
def quote_gateway(provider):
    return QuoteGateway(provider=provider, max_concurrency=4, today=lambda: TODAY)


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# QUOTES
# =============================================================================

class TestGetQuote:
    """Tests for the quote fallback chain."""

    def test_primary_path(self, provider, quote_gateway):
        provider.info["AAPL"] = RawQuote(
            symbol="AAPL",
            price=Decimal("187.5"),
            currency="USD",
            name="Apple Inc.",
            change_percent=Decimal("2.5"),
        )

        quote = run(quote_gateway.get_quote("aapl"))

        assert quote.ticker == "AAPL"
        assert quote.price == Decimal("187.5")
        assert quote.daily_change_percent == Decimal("0.025")
        assert ("fast", "AAPL") not in provider.calls

    def test_primary_fraction_unchanged(self, provider, quote_gateway):
        provider.info["AAPL"] = RawQuote(
            symbol="AAPL", price=Decimal("10"), currency="USD", name="Apple",
            change_percent=Decimal("0.025"),
        )
        assert run(quote_gateway.get_quote("AAPL")).daily_change_percent == Decimal("0.025")

    def test_secondary_when_primary_raises(self, provider, quote_gateway):
        provider.info["ENI.MI"] = ProviderUnavailableError("mock", "timeout")
        provider.fast["ENI.MI"] = RawQuote(
            symbol="ENI.MI",
            price=Decimal("14"),
            currency="EUR",
            previous_close=Decimal("14.5"),
        )

        quote = run(quote_gateway.get_quote("ENI.MI"))

        assert quote.price == Decimal("14")
        assert quote.name == "ENI.MI"
        assert quote.daily_change == Decimal("-0.5")

    def test_secondary_when_primary_has_no_currency(self, provider, quote_gateway):
        provider.info["X"] = RawQuote(symbol="X", price=Decimal("5"), name="X Corp")
        provider.fast["X"] = RawQuote(symbol="X", price=Decimal("5"), currency="USD")

        quote = run(quote_gateway.get_quote("X"))

        assert quote.currency == "USD"
        assert ("fast", "X") in provider.calls

    def test_secondary_when_primary_has_no_price(self, provider, quote_gateway):
        provider.info["X"] = RawQuote(symbol="X", currency="USD", name="X Corp")
        provider.fast["X"] = RawQuote(symbol="X", price=Decimal("5"), currency="USD")

        assert run(quote_gateway.get_quote("X")).price == Decimal("5")

    def test_both_paths_fail(self, provider, quote_gateway):
        """Both paths failing yields None, never an exception."""
        provider.info["X"] = RuntimeError("boom")
        provider.fast["X"] = RuntimeError("boom")

        assert run(quote_gateway.get_quote("X")) is None

    def test_empty_ticker(self, provider, quote_gateway):
        assert run(quote_gateway.get_quote("  ")) is None
        assert provider.calls == []

    def test_synthetic_previous_close(self, provider, quote_gateway):
        """Without previous close or change fields, history supplies one."""
        provider.info["X"] = RawQuote(symbol="X", price=Decimal("110"), currency="USD", name="X")
        provider.history["X"] = [
            PricePoint(date=date(2024, 6, 13), close=Decimal("90")),
            PricePoint(date=date(2024, 6, 14), close=Decimal("100")),
            PricePoint(date=TODAY, close=Decimal("110")),
        ]

        quote = run(quote_gateway.get_quote("X"))

        assert quote.daily_change == Decimal("10")
        assert quote.daily_change_percent == Decimal("0.1")

    def test_get_quotes_batches_distinct_tickers(self, provider, quote_gateway):
        provider.info["A"] = RawQuote(symbol="A", price=Decimal("1"), currency="USD", name="A",
                                      previous_close=Decimal("1"))

        quotes = run(quote_gateway.get_quotes(["A", "a", "B"]))

        assert set(quotes) == {"A", "B"}
        assert quotes["A"].price == Decimal("1")
        assert quotes["B"] is None
        assert sum(1 for c in provider.calls if c == ("info", "A")) == 1


# =============================================================================
# HISTORY
# =============================================================================

class TestGetHistoricalData:
    """Tests for history retrieval."""

    def test_defaults_end_to_today(self, provider, quote_gateway):
        run(quote_gateway.get_historical_data("X", date(2024, 6, 1)))
        assert provider.calls == [("history", "X", date(2024, 6, 1), TODAY)]

    def test_failure_is_empty(self, provider, quote_gateway):
        provider.history["X"] = ProviderUnavailableError("mock", "down")
        assert run(quote_gateway.get_historical_data("X", date(2024, 6, 1))) == []

    def test_inverted_range_is_empty(self, provider, quote_gateway):
        assert run(quote_gateway.get_historical_data("X", date(2024, 7, 1), date(2024, 6, 1))) == []
        assert provider.calls == []


# =============================================================================
# EXCHANGE RATES
# =============================================================================

class TestGetExchangeRate:
    """Tests for exchange-rate resolution."""

    def test_same_currency_without_provider_call(self, provider, quote_gateway):
        assert run(quote_gateway.get_exchange_rate("eur", "EUR")) == Decimal("1")
        assert provider.calls == []

    def test_direct_rate(self, provider, quote_gateway):
        provider.fx[("USD", "EUR")] = Decimal("0.9")
        assert run(quote_gateway.get_exchange_rate("USD", "EUR")) == Decimal("0.9")

    def test_inverse_rate(self, provider, quote_gateway):
        """A missing direct pair falls back to 1 / reverse pair."""
        provider.fx[("EUR", "GBP")] = Decimal("0.8")

        rate = run(quote_gateway.get_exchange_rate("GBP", "EUR"))

        assert rate == Decimal("1.25")
        assert ("fx", "EUR", "GBP") in provider.calls

    def test_unresolvable_is_none(self, provider, quote_gateway):
        assert run(quote_gateway.get_exchange_rate("XXX", "EUR")) is None

    def test_unavailable_provider_is_none(self, provider, quote_gateway):
        provider.fx[("USD", "EUR")] = ProviderUnavailableError("mock", "down")
        assert run(quote_gateway.get_exchange_rate("USD", "EUR")) is None


# =============================================================================
# SEARCH
# =============================================================================

class TestSearchSecurities:
    """Tests for the search guard."""

    def test_short_query_skips_provider(self, provider, quote_gateway):
        assert run(quote_gateway.search_securities("a")) == []
        assert provider.calls == []

    def test_results_pass_through(self, provider, quote_gateway):
        match = SecurityMatch(ticker="AAPL", name="Apple Inc.", exchange="NASDAQ", quote_type="EQUITY")
        provider.search_results = [match]

        assert run(quote_gateway.search_securities(" ap ")) == [match]
        assert provider.calls == [("search", "ap")]

    def test_failure_is_empty(self, provider, quote_gateway):
        provider.search_results = RuntimeError("boom")
        assert run(quote_gateway.search_securities("apple")) == []
