# tests/test_config_database.py
"""
Tests for settings validation and database setup.
"""

import pytest
from pydantic import ValidationError
from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from foliotrack.config import Settings
from foliotrack.database import build_engine, init_db


class TestSettings:
    """Tests for the Settings model."""

    def test_reference_currency_normalized(self):
        assert Settings(reference_currency=" usd ").reference_currency == "USD"

    def test_invalid_reference_currency(self):
        with pytest.raises(ValidationError):
            Settings(reference_currency="EURO")

    def test_test_environment_uses_memory_database(self):
        settings = Settings(environment="test", database_url=None)
        assert settings.database_url == "sqlite:///:memory:"

    def test_explicit_database_url_kept(self):
        settings = Settings(environment="test", database_url="sqlite:///holdings.db")
        assert settings.database_url == "sqlite:///holdings.db"

    def test_concurrency_bounds(self):
        with pytest.raises(ValidationError):
            Settings(market_data_max_concurrency=0)


class TestDatabase:
    """Tests for engine construction and schema creation."""

    def test_memory_engine_uses_static_pool(self):
        engine = build_engine("sqlite:///:memory:", echo=False)
        assert isinstance(engine.pool, StaticPool)

    def test_init_db_creates_holdings_table(self):
        engine = build_engine("sqlite:///:memory:", echo=False)

        init_db(engine)

        assert "holdings" in inspect(engine).get_table_names()
