# backend/foliotrack/schemas/holdings.py
"""
Pydantic schemas for Holding validation.

These schemas define:
- What data the add-holding flows must send (Create)
- What data the edit flows can change (Update)
- What a quote refresh writes back (MarketValueUpdate)

Validation layers:
- Field constraints: type, length, pattern, numeric limits
- Field validators: normalization (uppercase, trim), date checks
- Store: ownership, category checks, derived fields

IMPORTANT: All financial values use Decimal for precision.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from foliotrack.models import SecurityType
from foliotrack.schemas.validators import (
    validate_currency,
    validate_purchase_date,
    validate_ticker,
)


# =============================================================================
# CREATE SCHEMAS
# =============================================================================

class SecurityCreate(BaseModel):
    """
    Payload for logging a security purchase.

    initial_value is not accepted: it is always quantity × purchase_price.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label",
        examples=["Vanguard FTSE All-World"]
    )

    ticker: str = Field(
        ...,
        description="Yahoo Finance symbol",
        examples=["VWCE.DE", "AAPL"]
    )

    security_type: SecurityType = Field(
        default=SecurityType.STOCK,
        description="STOCK or ETF"
    )

    currency: str = Field(
        default="EUR",
        description="Currency the purchase price is denominated in (ISO 4217)",
        examples=["EUR", "USD"]
    )

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Number of shares/units bought (must be positive)",
        examples=["10", "0.5"]
    )

    purchase_price: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Price per unit at acquisition (must be positive)",
        examples=["101.25"]
    )

    purchase_date: date | None = Field(
        default=None,
        description="Acquisition date (defaults to today)"
    )

    @field_validator('ticker')
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return validate_currency(v)

    @field_validator('purchase_date')
    @classmethod
    def check_purchase_date(cls, v: date | None) -> date | None:
        return validate_purchase_date(v)


class CashAccountCreate(BaseModel):
    """Payload for adding a bank account with its current balance."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label",
        examples=["Savings account"]
    )

    currency: str = Field(
        default="EUR",
        description="Account currency (ISO 4217)"
    )

    balance: Decimal = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Current balance (0 or positive)",
        examples=["5000"]
    )

    purchase_date: date | None = Field(
        default=None,
        description="Date the balance was set (defaults to today)"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return validate_currency(v)

    @field_validator('purchase_date')
    @classmethod
    def check_purchase_date(cls, v: date | None) -> date | None:
        return validate_purchase_date(v)


# =============================================================================
# UPDATE SCHEMAS
# =============================================================================

class SecurityUpdate(BaseModel):
    """
    Edit of a security purchase. All fields optional; only provided fields
    are changed. A quantity or price change recomputes initial_value.
    """

    quantity: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
    )
    purchase_price: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
    )
    purchase_date: date | None = None

    @field_validator('purchase_date')
    @classmethod
    def check_purchase_date(cls, v: date | None) -> date | None:
        return validate_purchase_date(v)

    @property
    def changes_cost(self) -> bool:
        """True if quantity or price is being edited."""
        return self.quantity is not None or self.purchase_price is not None


class CashBalanceUpdate(BaseModel):
    """New balance for a cash account. Resets the balance date to today."""

    balance: Decimal = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="New balance (0 or positive)"
    )


class MarketValueUpdate(BaseModel):
    """Quote refresh written back to a security holding."""

    current_value: Decimal = Field(..., ge=0)
    daily_change: Decimal | None = None
    daily_change_percent: Decimal | None = None


HoldingCreate = SecurityCreate | CashAccountCreate
HoldingUpdate = SecurityUpdate | CashBalanceUpdate | MarketValueUpdate
