# backend/metrics_seed/services/seed.py

r"""
Seed the `metrics` table with synthetic sensor readings.

For seq in 1..rows:

    created     = now + seq / 100 ms
    sensor_id   = seq % sensor_count + 1
    temperature = base_temperature + random() * temperature_spread

On Postgres the rows are generated server-side with generate_series in a
single INSERT ... SELECT. Other dialects (SQLite in tests) get the same
formula evaluated in Python and written with chunked executemany.
Either way the whole seed is one transaction.

Run (bash/zsh):

    cd backend
    python -m metrics_seed.main seed --rows 100000
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from itertools import islice
from typing import Optional

from sqlalchemy import func, insert, select, text
from sqlalchemy.engine import Connection, Engine

from metrics_seed.core.config import get_settings
from metrics_seed.core.errors import InvalidSeedParameters
from metrics_seed.models import metrics
from metrics_seed.services.generator import SEED_STEP, seed_rows

logger = logging.getLogger("metrics_seed")

SEED_SQL_POSTGRES = text(
    """
    INSERT INTO metrics (created, sensor_id, temperature)
    SELECT
        NOW() + seq * :step AS created,
        (seq % :sensor_count + 1)::integer AS sensor_id,
        :base_temperature + RANDOM() * :temperature_spread AS temperature
    FROM GENERATE_SERIES(1, :rows) AS seq
    """
)


def _validate(rows: int, sensor_count: int, chunk_size: int) -> None:
    if rows < 0:
        raise InvalidSeedParameters(f"rows must be >= 0, got {rows}")
    if sensor_count < 1:
        raise InvalidSeedParameters(f"sensor_count must be >= 1, got {sensor_count}")
    if chunk_size < 1:
        raise InvalidSeedParameters(f"chunk_size must be >= 1, got {chunk_size}")


def seed_metrics(
    engine: Engine,
    rows: Optional[int] = None,
    *,
    sensor_count: Optional[int] = None,
    base_temperature: Optional[float] = None,
    temperature_spread: Optional[float] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    chunk_size: Optional[int] = None,
) -> int:
    """
    Insert `rows` synthetic readings; unset arguments fall back to settings.

    `now` and `rng` only apply to the portable path; on Postgres the server's
    NOW() and RANDOM() are used.

    Returns the number of rows inserted.
    """
    settings = get_settings()
    rows = settings.seed_rows if rows is None else rows
    sensor_count = settings.sensor_count if sensor_count is None else sensor_count
    base_temperature = settings.base_temperature if base_temperature is None else base_temperature
    temperature_spread = (
        settings.temperature_spread if temperature_spread is None else temperature_spread
    )
    chunk_size = settings.seed_chunk_size if chunk_size is None else chunk_size

    _validate(rows, sensor_count, chunk_size)

    if rows == 0:
        logger.info("Seed requested with rows=0; nothing to insert")
        return 0

    dialect = engine.dialect.name
    logger.info(
        "Seeding %s rows into metrics (dialect=%s, sensors=%s, temperature=%s+%s)",
        rows,
        dialect,
        sensor_count,
        base_temperature,
        temperature_spread,
    )

    with engine.begin() as conn:
        if dialect == "postgresql":
            inserted = _seed_server_side(
                conn,
                rows,
                sensor_count=sensor_count,
                base_temperature=base_temperature,
                temperature_spread=temperature_spread,
            )
        else:
            inserted = _seed_portable(
                conn,
                rows,
                sensor_count=sensor_count,
                base_temperature=base_temperature,
                temperature_spread=temperature_spread,
                now=now,
                rng=rng,
                chunk_size=chunk_size,
            )

    logger.info("Seeded %s rows into metrics", inserted)
    return inserted


def _seed_server_side(
    conn: Connection,
    rows: int,
    *,
    sensor_count: int,
    base_temperature: float,
    temperature_spread: float,
) -> int:
    result = conn.execute(
        SEED_SQL_POSTGRES,
        {
            "step": SEED_STEP,
            "sensor_count": sensor_count,
            "base_temperature": base_temperature,
            "temperature_spread": temperature_spread,
            "rows": rows,
        },
    )
    # rowcount is reliable for INSERT ... SELECT on psycopg2
    return result.rowcount if result.rowcount is not None and result.rowcount >= 0 else rows


def _seed_portable(
    conn: Connection,
    rows: int,
    *,
    sensor_count: int,
    base_temperature: float,
    temperature_spread: float,
    now: Optional[datetime],
    rng: Optional[random.Random],
    chunk_size: int,
) -> int:
    generated = seed_rows(
        rows,
        now=now,
        sensor_count=sensor_count,
        base_temperature=base_temperature,
        temperature_spread=temperature_spread,
        rng=rng,
    )
    stmt = insert(metrics)
    inserted = 0

    while True:
        chunk = [row.as_params() for row in islice(generated, chunk_size)]
        if not chunk:
            break
        conn.execute(stmt, chunk)
        inserted += len(chunk)
        logger.debug("Seed chunk written (%s/%s rows)", inserted, rows)

    return inserted


def count_metrics(engine: Engine) -> int:
    with engine.connect() as conn:
        return int(conn.execute(select(func.count()).select_from(metrics)).scalar_one())
