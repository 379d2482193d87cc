# backend/metrics_seed/db/init_db.py

from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from metrics_seed.db.session import mask_url
from metrics_seed.models import METRICS_TABLE, metrics

logger = logging.getLogger("metrics_seed")


def metrics_table_exists(engine: Engine) -> bool:
    return inspect(engine).has_table(METRICS_TABLE)


def create_metrics_table(engine: Engine, *, if_not_exists: bool = False) -> bool:
    """
    Create the `metrics` table.

    Strict by default: running it against a database that already has the
    table raises the engine's own "already exists" error (wrapped by
    SQLAlchemy as OperationalError / ProgrammingError).

    - if_not_exists=True skips the DDL when the table is already present.

    Returns True when the table was created, False when it was skipped.
    """
    logger.info("Creating table %s on %s", METRICS_TABLE, mask_url(str(engine.url)))

    if if_not_exists and metrics_table_exists(engine):
        logger.info("Table %s already exists; skipping create", METRICS_TABLE)
        return False

    metrics.create(bind=engine, checkfirst=False)
    logger.info("Created table %s", METRICS_TABLE)
    return True


def drop_metrics_table(engine: Engine, *, if_exists: bool = True) -> None:
    """
    DANGEROUS: drops the table with all seeded rows.
    Test/reset tooling only.
    """
    metrics.drop(bind=engine, checkfirst=if_exists)
    logger.info("Dropped table %s", METRICS_TABLE)
