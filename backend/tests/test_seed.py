# backend/tests/test_seed.py
from __future__ import annotations

import random
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from metrics_seed.core.config import get_settings
from metrics_seed.core.errors import InvalidSeedParameters, SeedErrorCode
from metrics_seed.models import metrics
from metrics_seed.services.seed import SEED_SQL_POSTGRES, count_metrics, seed_metrics

NOW = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)


def _rows(engine):
    with engine.connect() as conn:
        return conn.execute(
            select(metrics.c.created, metrics.c.sensor_id, metrics.c.temperature)
        ).all()


def test_seed_inserts_configured_bound(metrics_engine):
    inserted = seed_metrics(metrics_engine, 100, now=NOW, rng=random.Random(42))

    assert inserted == 100
    assert count_metrics(metrics_engine) == 100
    for created, sensor_id, temperature in _rows(metrics_engine):
        assert 1 <= sensor_id <= 32
        assert Decimal("20") <= Decimal(temperature) < Decimal("25")


def test_seed_end_to_end_small_bound(metrics_engine):
    assert seed_metrics(metrics_engine, 5, sensor_count=5, now=NOW) == 5

    rows = _rows(metrics_engine)
    assert len(rows) == 5
    assert sorted(r.sensor_id for r in rows) == [1, 2, 3, 4, 5]
    assert all(Decimal("20") <= Decimal(r.temperature) < Decimal("25") for r in rows)

    stamps = [r.created for r in rows]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


def test_seed_uses_settings_defaults(metrics_engine, monkeypatch):
    monkeypatch.setenv("SEED_ROWS", "12")
    monkeypatch.setenv("SENSOR_COUNT", "3")
    monkeypatch.setenv("SEED_CHUNK_SIZE", "5")
    # the engine fixture already read (and cached) settings
    get_settings.cache_clear()

    assert seed_metrics(metrics_engine, now=NOW) == 12
    assert {r.sensor_id for r in _rows(metrics_engine)} == {1, 2, 3}


def test_seed_chunks_do_not_change_result(metrics_engine):
    assert seed_metrics(metrics_engine, 23, chunk_size=4, now=NOW) == 23
    assert count_metrics(metrics_engine) == 23


def test_seed_zero_rows_is_noop(metrics_engine):
    assert seed_metrics(metrics_engine, 0) == 0
    assert count_metrics(metrics_engine) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rows": -1},
        {"rows": 10, "sensor_count": 0},
        {"rows": 10, "chunk_size": 0},
    ],
)
def test_seed_rejects_bad_parameters(metrics_engine, kwargs):
    with pytest.raises(InvalidSeedParameters) as exc_info:
        seed_metrics(metrics_engine, **kwargs)
    assert exc_info.value.code is SeedErrorCode.INVALID_PARAMETERS
    assert count_metrics(metrics_engine) == 0


class _FailingRandom:
    """Raises once `fail_after` values have been drawn."""

    def __init__(self, fail_after: int) -> None:
        self._rng = random.Random(0)
        self.calls = 0
        self.fail_after = fail_after

    def random(self) -> float:
        self.calls += 1
        if self.calls > self.fail_after:
            raise RuntimeError("generator broke mid-seed")
        return self._rng.random()


def test_seed_is_all_or_nothing(metrics_engine):
    rng = _FailingRandom(fail_after=25)
    with pytest.raises(RuntimeError):
        seed_metrics(metrics_engine, 50, chunk_size=10, now=NOW, rng=rng)

    # two chunks were written before the failure; the rollback removed them
    assert rng.calls == 26
    assert count_metrics(metrics_engine) == 0


def test_seed_without_table_fails(engine):
    with pytest.raises(OperationalError):
        seed_metrics(engine, 10, now=NOW)


def test_postgres_statement_uses_generate_series():
    compiled = str(SEED_SQL_POSTGRES.compile(dialect=postgresql.dialect()))
    normalized = " ".join(compiled.split())

    assert "INSERT INTO metrics (created, sensor_id, temperature)" in normalized
    assert "FROM GENERATE_SERIES(1, %(rows)s) AS seq" in normalized
    assert "(seq %% %(sensor_count)s + 1)::integer AS sensor_id" in normalized
    assert "NOW() + seq * %(step)s AS created" in normalized
