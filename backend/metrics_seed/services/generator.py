# backend/metrics_seed/services/generator.py

"""
Synthetic sensor readings for the `metrics` table.

Two shapes are produced:

- seed rows: one row per sequence value 1..N, with a sub-millisecond time
  offset per row (used by the seed operation on dialects without
  generate_series, and as the reference formula in tests)
- benchmark batches: fixed-size batches sharing one timestamp per batch,
  advancing a tick at a time (used by the load benchmark)
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

# seq / 100 milliseconds == seq * 10 microseconds
SEED_STEP = timedelta(microseconds=10)

MAX_SENSORS = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MetricRow:
    created: datetime
    sensor_id: int
    temperature: Decimal

    def as_params(self) -> dict:
        return {
            "created": self.created,
            "sensor_id": self.sensor_id,
            "temperature": self.temperature,
        }


# ---------------------------------------------------------------------------
# Seed rows
# ---------------------------------------------------------------------------


def seed_created(now: datetime, seq: int) -> datetime:
    return now + seq * SEED_STEP


def seed_sensor_id(seq: int, sensor_count: int = MAX_SENSORS) -> int:
    return seq % sensor_count + 1


def seed_rows(
    rows: int,
    *,
    now: Optional[datetime] = None,
    sensor_count: int = MAX_SENSORS,
    base_temperature: float = 20.0,
    temperature_spread: float = 5.0,
    rng: Optional[random.Random] = None,
) -> Iterator[MetricRow]:
    """Yield one reading per seq in 1..rows."""
    now = now or _utcnow()
    rng = rng or random.Random()

    for seq in range(1, rows + 1):
        temperature = base_temperature + rng.random() * temperature_spread
        yield MetricRow(
            created=seed_created(now, seq),
            sensor_id=seed_sensor_id(seq, sensor_count),
            temperature=Decimal(repr(temperature)),
        )


# ---------------------------------------------------------------------------
# Benchmark batches
# ---------------------------------------------------------------------------


def generate_batch(
    created: datetime,
    sensor_id: int,
    base_temperature: float,
    *,
    batch_size: int,
    jitter: float = 5.0,
    max_sensors: int = MAX_SENSORS,
    rng: Optional[random.Random] = None,
) -> Tuple[List[MetricRow], int]:
    """
    Build one batch sharing `created`.

    Returns (rows, last_sensor_id) so the next batch continues the cycle.
    """
    rng = rng or random.Random()
    current = sensor_id
    batch: List[MetricRow] = []

    for i in range(batch_size):
        current = (current + i) % max_sensors + 1
        value = round(base_temperature + rng.uniform(-jitter, jitter), 2)
        batch.append(
            MetricRow(
                created=created,
                sensor_id=current,
                temperature=Decimal(f"{value:.2f}"),
            )
        )

    return batch, current


def generate_batches(
    start_time: datetime,
    base_temperature: float,
    batch_count: int,
    *,
    batch_size: int,
    tick_ms: int = 100,
    jitter: float = 5.0,
    max_sensors: int = MAX_SENSORS,
    rng: Optional[random.Random] = None,
) -> Iterator[Tuple[List[MetricRow], int]]:
    """
    Yield (batch, tick) pairs; tick starts at 1 and the batch timestamp
    advances by tick_ms each time.
    """
    rng = rng or random.Random()
    current_time = start_time
    sensor_id = 1

    for tick in range(1, batch_count + 1):
        current_time += timedelta(milliseconds=tick_ms)
        batch, sensor_id = generate_batch(
            current_time,
            sensor_id,
            base_temperature,
            batch_size=batch_size,
            jitter=jitter,
            max_sensors=max_sensors,
            rng=rng,
        )
        yield batch, tick
