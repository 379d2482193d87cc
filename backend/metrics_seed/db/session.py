# backend/metrics_seed/db/session.py
from __future__ import annotations

import re
import time
import logging
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from metrics_seed.core.config import Settings, get_settings
from metrics_seed.core.run_context import get_run_id, record_db_query

logger = logging.getLogger("metrics_seed")


def _sql_head(statement: str) -> str:
    if not statement:
        return ""
    # Collapse whitespace + trim. No params logged.
    head = " ".join(statement.split())
    return head[:240]


def make_engine(database_url: Optional[str] = None, settings: Optional[Settings] = None) -> Engine:
    """
    Build an engine for `database_url` (defaults to settings.database_url) with
    query timing hooks attached.
    """
    settings = settings or get_settings()
    url = database_url or settings.database_url

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        pool_pre_ping=not url.startswith("sqlite"),
    )
    _install_query_hooks(engine, settings.slow_db_query_ms, settings.log_db_sql)
    return engine


# ---- DB observability (SQLAlchemy event hooks) ----

def _install_query_hooks(engine: Engine, slow_query_ms: float, log_sql: bool) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if context is not None:
            context._metrics_seed_query_start = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_metrics_seed_query_start", None)
        if start is None:
            return

        duration_ms = (time.perf_counter() - start) * 1000.0
        head = _sql_head(statement)

        record_db_query(duration_ms, head)

        if duration_ms >= slow_query_ms:
            rid = get_run_id()
            if log_sql:
                logger.warning(
                    "slow_db_query run_id=%s duration_ms=%.2f sql=%s",
                    rid,
                    duration_ms,
                    head,
                )
            else:
                logger.warning(
                    "slow_db_query run_id=%s duration_ms=%.2f",
                    rid,
                    duration_ms,
                )


def mask_url(url: str) -> str:
    """Hide the password part of a DB URL for printing/logging."""
    return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", url, count=1)
