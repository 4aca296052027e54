# backend/foliotrack/schemas/__init__.py
"""
Pydantic schemas for holding input validation.

Usage:
    from foliotrack.schemas import SecurityCreate, CashBalanceUpdate
"""

from foliotrack.schemas.holdings import (
    SecurityCreate,
    CashAccountCreate,
    SecurityUpdate,
    CashBalanceUpdate,
    MarketValueUpdate,
    HoldingCreate,
    HoldingUpdate,
)

__all__ = [
    "SecurityCreate",
    "CashAccountCreate",
    "SecurityUpdate",
    "CashBalanceUpdate",
    "MarketValueUpdate",
    "HoldingCreate",
    "HoldingUpdate",
]
