"""Run-scoped log correlation for simulations."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

_run_id_ctx: ContextVar[Optional[str]] = ContextVar("landedcost_run_id", default=None)


def new_run_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def simulation_run(run_id: Optional[str] = None) -> Iterator[str]:
    """Bind a run id for the duration of one simulation.

    A fresh uuid4 is generated when ``run_id`` is not supplied. The previous
    binding is restored on exit, so nested runs do not leak into each other.
    """

    value = run_id or new_run_id()
    token = _run_id_ctx.set(value)
    try:
        yield value
    finally:
        _run_id_ctx.reset(token)


def current_run_id() -> Optional[str]:
    """Return the active run id if a simulation is in progress."""

    return _run_id_ctx.get()


def log_event(
    message: str,
    *,
    level: int = logging.INFO,
    target: logging.Logger | None = None,
    **fields: object,
) -> None:
    """Log ``message`` with the active run id and ``fields`` attached as ``payload``."""

    payload = {"run_id": current_run_id(), **fields}
    (target or logger).log(level, message, extra={"payload": payload})
