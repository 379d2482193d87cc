# backend/tests/test_generator.py
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from metrics_seed.services.generator import (
    SEED_STEP,
    generate_batch,
    generate_batches,
    seed_rows,
    seed_sensor_id,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_seed_rows_count_and_ranges():
    rows = list(seed_rows(100, now=NOW, rng=random.Random(7)))

    assert len(rows) == 100
    for row in rows:
        assert 1 <= row.sensor_id <= 32
        assert Decimal("20.0") <= row.temperature < Decimal("25.0")


def test_seed_rows_timestamps_step_by_sub_millisecond():
    rows = list(seed_rows(50, now=NOW, rng=random.Random(1)))

    assert rows[0].created == NOW + timedelta(microseconds=10)
    for prev, cur in zip(rows, rows[1:]):
        assert cur.created - prev.created == SEED_STEP
    assert SEED_STEP == timedelta(milliseconds=1) / 100


def test_seed_sensor_id_cycles():
    assert [seed_sensor_id(seq) for seq in (1, 31, 32, 33, 64)] == [2, 32, 1, 2, 1]
    assert {seed_sensor_id(seq, 5) for seq in range(1, 6)} == {1, 2, 3, 4, 5}


def test_seed_rows_zero_is_empty():
    assert list(seed_rows(0, now=NOW)) == []


def test_seed_rows_custom_temperature_range():
    rows = list(
        seed_rows(200, now=NOW, base_temperature=-10.0, temperature_spread=1.0, rng=random.Random(3))
    )
    assert all(Decimal("-10") <= r.temperature < Decimal("-9") for r in rows)


def test_generate_batch_shares_timestamp_and_rounds_temperature():
    batch, last = generate_batch(NOW, 1, 20.0, batch_size=500, rng=random.Random(11))

    assert len(batch) == 500
    assert {row.created for row in batch} == {NOW}
    assert last == batch[-1].sensor_id
    for row in batch:
        assert 1 <= row.sensor_id <= 32
        assert Decimal("15") <= row.temperature <= Decimal("25")
        assert row.temperature.as_tuple().exponent == -2


def test_generate_batch_sensor_sequence():
    batch, _ = generate_batch(NOW, 1, 20.0, batch_size=4, rng=random.Random(0))
    # (1+0)%32+1=2, (2+1)%32+1=4, (4+2)%32+1=7, (7+3)%32+1=11
    assert [row.sensor_id for row in batch] == [2, 4, 7, 11]


def test_generate_batches_ticks_and_time():
    batches = list(
        generate_batches(NOW, 20.0, 3, batch_size=10, tick_ms=100, rng=random.Random(5))
    )

    assert [tick for _, tick in batches] == [1, 2, 3]
    stamps = [batch[0].created for batch, _ in batches]
    assert stamps == [NOW + timedelta(milliseconds=100 * i) for i in (1, 2, 3)]


def test_generate_batches_continue_sensor_cycle():
    batches = list(generate_batches(NOW, 20.0, 2, batch_size=3, rng=random.Random(2)))
    first, second = batches[0][0], batches[1][0]

    expected = (first[-1].sensor_id + 0) % 32 + 1
    assert second[0].sensor_id == expected
