# backend/foliotrack/utils/context.py
"""
Computation-pass context for the valuation engine.

Every engine call (snapshot, history, allocation) runs as an independent
"pass". The pass id is stored in a context variable so that all log lines
emitted while the pass runs, including those from provider calls awaited
concurrently inside it, can be correlated.

Uses Python's contextvars, which propagate through await and into
asyncio.to_thread workers.

Usage:
    from foliotrack.utils.context import computation_pass, get_pass_id

    with computation_pass("history") as pass_id:
        ...
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_pass_id_var: ContextVar[str | None] = ContextVar("pass_id", default=None)


def get_pass_id() -> str | None:
    """
    Get the current computation pass id.

    Returns:
        The pass id, or None outside of a computation pass.
    """
    return _pass_id_var.get()


def set_pass_id(pass_id: str) -> None:
    """Set the pass id for the current context."""
    _pass_id_var.set(pass_id)


def clear_pass_id() -> None:
    """Clear the pass id."""
    _pass_id_var.set(None)


@contextmanager
def computation_pass(kind: str) -> Iterator[str]:
    """
    Tag everything executed inside the block with a fresh pass id.

    Nested passes (e.g. a history pass computing its fallback snapshot)
    keep the outer id.

    Args:
        kind: Short label prefixed to the id (e.g. "snapshot")

    Yields:
        The active pass id
    """
    current = _pass_id_var.get()
    if current is not None:
        yield current
        return

    pass_id = f"{kind}-{uuid.uuid4().hex[:8]}"
    token = _pass_id_var.set(pass_id)
    try:
        yield pass_id
    finally:
        _pass_id_var.reset(token)
