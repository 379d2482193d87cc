# backend/metrics_seed/services/loaders.py

"""
Load strategies for writing one benchmark batch into `metrics`.

- insert:     one transaction, parameterized INSERT executed per row (executemany)
- insert-str: one INSERT with every row rendered as a literal VALUES tuple
- copy:       COPY metrics FROM STDIN WITH BINARY (Postgres + psycopg2 only)

All loaders share the signature (engine, rows, tick, report_every) and log
"Copied <tick>" every `report_every` batches.
"""

from __future__ import annotations

import io
import logging
import time
from datetime import timezone
from decimal import Decimal
from typing import Callable, Dict, Sequence

from sqlalchemy import insert
from sqlalchemy.engine import Engine

from metrics_seed.core.errors import UnsupportedDialectError
from metrics_seed.core.run_context import record_db_query
from metrics_seed.models import COLUMNS, METRICS_TABLE, metrics
from metrics_seed.services.generator import MetricRow
from metrics_seed.services.pgcopy import encode_rows

logger = logging.getLogger("metrics_seed")

Loader = Callable[[Engine, Sequence[MetricRow], int, int], int]


def _report(tick: int, report_every: int) -> None:
    if report_every > 0 and tick % report_every == 0:
        logger.info("Copied %s", tick)


def insert_rows(engine: Engine, rows: Sequence[MetricRow], tick: int, report_every: int = 100) -> int:
    if not rows:
        return 0
    with engine.begin() as conn:
        conn.execute(insert(metrics), [row.as_params() for row in rows])
    _report(tick, report_every)
    return len(rows)


def _literal_tuple(row: MetricRow, dialect: str) -> str:
    created = row.created
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc)
    temperature = row.temperature if isinstance(row.temperature, Decimal) else Decimal(str(row.temperature))

    if dialect == "postgresql":
        ts = created.isoformat() if created.tzinfo is not None else f"{created.isoformat()}+00:00"
        return (
            f"('{ts}'::timestamp with time zone, {int(row.sensor_id)}, "
            f"{temperature}::numeric(10, 2))"
        )

    # SQLite stores DateTime as naive ISO text in UTC.
    ts = created.replace(tzinfo=None).strftime("%Y-%m-%d %H:%M:%S.%f")
    return f"('{ts}', {int(row.sensor_id)}, {temperature})"


def build_literal_insert(rows: Sequence[MetricRow], dialect: str) -> str:
    tuples = ",".join(_literal_tuple(row, dialect) for row in rows)
    return f"INSERT INTO {METRICS_TABLE} ({', '.join(COLUMNS)}) VALUES {tuples}"


def insert_rows_literal(
    engine: Engine, rows: Sequence[MetricRow], tick: int, report_every: int = 100
) -> int:
    if not rows:
        return 0
    query = build_literal_insert(rows, engine.dialect.name)
    with engine.begin() as conn:
        # exec_driver_sql: the statement carries no bind params
        conn.exec_driver_sql(query)
    _report(tick, report_every)
    return len(rows)


def copy_rows(engine: Engine, rows: Sequence[MetricRow], tick: int, report_every: int = 100) -> int:
    if engine.dialect.name != "postgresql" or engine.dialect.driver != "psycopg2":
        raise UnsupportedDialectError("COPY BINARY", f"{engine.dialect.name}+{engine.dialect.driver}")
    if not rows:
        return 0

    buffer = io.BytesIO(encode_rows(rows))
    statement = f"COPY {METRICS_TABLE} ({', '.join(COLUMNS)}) FROM STDIN WITH BINARY"
    raw = engine.raw_connection()
    try:
        # copy_expert runs on the DBAPI cursor, outside the engine's cursor events
        start = time.perf_counter()
        with raw.cursor() as cursor:
            cursor.copy_expert(statement, buffer)
        raw.commit()
        record_db_query((time.perf_counter() - start) * 1000.0, statement)
    except Exception:
        raw.rollback()
        raise
    finally:
        raw.close()

    _report(tick, report_every)
    return len(rows)


LOADERS: Dict[str, Loader] = {
    "insert": insert_rows,
    "insert-str": insert_rows_literal,
    "copy": copy_rows,
}


def get_loader(name: str) -> Loader:
    try:
        return LOADERS[name]
    except KeyError:
        raise ValueError(f"unknown load strategy {name!r}; expected one of {sorted(LOADERS)}") from None
