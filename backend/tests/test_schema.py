# backend/tests/test_schema.py
from __future__ import annotations

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError, OperationalError

from metrics_seed.db.init_db import (
    create_metrics_table,
    drop_metrics_table,
    metrics_table_exists,
)


def test_create_table_columns_are_not_null(engine):
    assert create_metrics_table(engine) is True
    assert metrics_table_exists(engine)

    columns = {c["name"]: c for c in inspect(engine).get_columns("metrics")}
    assert list(columns) == ["created", "sensor_id", "temperature"]
    assert all(not c["nullable"] for c in columns.values())
    assert columns["created"]["default"] is not None


def test_second_create_fails_without_if_not_exists(engine):
    create_metrics_table(engine)
    with pytest.raises(OperationalError):
        create_metrics_table(engine)


def test_if_not_exists_skips_existing_table(engine):
    assert create_metrics_table(engine, if_not_exists=True) is True
    assert create_metrics_table(engine, if_not_exists=True) is False


def test_created_defaults_to_now(metrics_engine):
    with metrics_engine.begin() as conn:
        conn.execute(text("INSERT INTO metrics (sensor_id, temperature) VALUES (1, 21.5)"))
        created = conn.execute(text("SELECT created FROM metrics")).scalar_one()
    assert created is not None


@pytest.mark.parametrize(
    "sql",
    [
        "INSERT INTO metrics (created, sensor_id, temperature) VALUES (NULL, 1, 20.0)",
        "INSERT INTO metrics (sensor_id, temperature) VALUES (NULL, 20.0)",
        "INSERT INTO metrics (sensor_id, temperature) VALUES (1, NULL)",
    ],
)
def test_nulls_are_rejected_by_the_engine(metrics_engine, sql):
    with pytest.raises(IntegrityError):
        with metrics_engine.begin() as conn:
            conn.execute(text(sql))


def test_drop_table(metrics_engine):
    drop_metrics_table(metrics_engine)
    assert not metrics_table_exists(metrics_engine)
    # if_exists=True tolerates a missing table
    drop_metrics_table(metrics_engine)
