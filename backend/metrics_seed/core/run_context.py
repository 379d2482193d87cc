# backend/metrics_seed/core/run_context.py
from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Optional

# --- Run id (one per CLI invocation / benchmark strategy) ---
run_id_var: ContextVar[Optional[str]] = ContextVar("metrics_seed_run_id", default=None)


def set_run_id(rid: str | None) -> Token:
    return run_id_var.set(rid)


def reset_run_id(token: Token) -> None:
    run_id_var.reset(token)


def get_run_id() -> str:
    return run_id_var.get() or "-"


# --- DB timing (run-scoped) ---

@dataclass
class DbMetrics:
    query_count: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0
    slowest_sql_head: str = ""


db_metrics_var: ContextVar[Optional[DbMetrics]] = ContextVar("metrics_seed_db_metrics", default=None)


def reset_db_metrics() -> None:
    """Call once per measured run to start clean metrics."""
    db_metrics_var.set(DbMetrics())


def get_db_metrics() -> DbMetrics:
    m = db_metrics_var.get()
    if m is None:
        m = DbMetrics()
        db_metrics_var.set(m)
    return m


def record_db_query(duration_ms: float, sql_head: str = "") -> None:
    """Record one DB query timing into the current run's metrics."""
    m = get_db_metrics()
    m.query_count += 1
    m.total_ms += float(duration_ms)

    if float(duration_ms) > m.slowest_ms:
        m.slowest_ms = float(duration_ms)
        m.slowest_sql_head = (sql_head or "")[:240]
