# backend/foliotrack/utils/__init__.py
"""
Utility modules for Foliotrack.

This package contains cross-cutting utilities:
- logging: Logging configuration with computation-pass ids
- context: Pass id storage (contextvars)
- date_utils: Calendar helpers (day iteration, month arithmetic)

Usage:
    from foliotrack.utils import setup_logging
    from foliotrack.utils import computation_pass, get_pass_id
    from foliotrack.utils.date_utils import iter_days
"""

from foliotrack.utils.context import (
    computation_pass,
    get_pass_id,
    set_pass_id,
    clear_pass_id,
)
from foliotrack.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "computation_pass",
    "get_pass_id",
    "set_pass_id",
    "clear_pass_id",
]
