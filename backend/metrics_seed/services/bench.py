# backend/metrics_seed/services/bench.py

from __future__ import annotations

import logging
import random
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine

from metrics_seed.core.config import get_settings
from metrics_seed.core.errors import UnsupportedDialectError
from metrics_seed.core.run_context import get_db_metrics, reset_db_metrics, reset_run_id, set_run_id
from metrics_seed.services.generator import MAX_SENSORS, generate_batches
from metrics_seed.services.loaders import get_loader

logger = logging.getLogger("metrics_seed")

UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def convert_bytes(value: float, to: str) -> float:
    """Scale a byte count to `to` (base 1024); unknown units mean bytes."""
    unit = (to or "").upper()
    index = UNITS.index(unit) if unit in UNITS else 0
    return value / (1024.0 ** index)


def table_size(engine: Engine) -> int:
    """On-disk size of the metrics table (Postgres) or whole database file (SQLite)."""
    dialect = engine.dialect.name
    with engine.connect() as conn:
        if dialect == "postgresql":
            return int(conn.execute(text("SELECT pg_total_relation_size('public.metrics') AS size")).scalar_one())
        if dialect == "sqlite":
            page_count = conn.exec_driver_sql("PRAGMA page_count").scalar_one()
            page_size = conn.exec_driver_sql("PRAGMA page_size").scalar_one()
            return int(page_count) * int(page_size)
    raise UnsupportedDialectError("table size measurement", dialect)


@dataclass
class LoadReport:
    name: str
    bytes_written: int = 0
    seconds: float = 0.0
    rows: int = 0
    query_count: int = 0
    db_ms: float = 0.0
    slowest_ms: float = 0.0
    slowest_sql_head: str = ""

    @property
    def speed(self) -> float:
        """Bytes per second; 0 when nothing measurable elapsed."""
        if self.seconds <= 0:
            return 0.0
        return self.bytes_written / self.seconds

    @property
    def speed_mb(self) -> float:
        return convert_bytes(self.speed, "MB")

    @property
    def data_mb(self) -> float:
        return convert_bytes(float(self.bytes_written), "MB")

    def lines(self) -> List[str]:
        return [
            f"{self.name}:",
            f"Speed: {self.speed_mb:.2f}MB/s",
            f" Data: {self.data_mb:.2f}MB",
            f" Time: {self.seconds:.2f}s",
            f" Rows: {self.rows}",
            f"   DB: {self.db_ms:.2f}ms in {self.query_count} queries (slowest {self.slowest_ms:.2f}ms)",
        ]


@contextmanager
def measure_load(engine: Engine, name: str) -> Iterator[LoadReport]:
    """
    Measure table growth and wall time around a load.

    The caller adds to `report.rows`; size, time and query count are filled
    in on exit (also when the load raises, so partial runs are still logged).
    """
    report = LoadReport(name=name)
    token = set_run_id(f"{name}-{uuid.uuid4().hex[:8]}")
    try:
        s0 = table_size(engine)
        reset_db_metrics()
        t0 = time.perf_counter()
        try:
            yield report
        finally:
            report.seconds = time.perf_counter() - t0
            db_metrics = get_db_metrics()
            report.query_count = db_metrics.query_count
            report.db_ms = db_metrics.total_ms
            report.slowest_ms = db_metrics.slowest_ms
            report.slowest_sql_head = db_metrics.slowest_sql_head
            report.bytes_written = table_size(engine) - s0
            for line in report.lines():
                logger.info(line)
            # SQL text only with LOG_DB_SQL
            if report.slowest_sql_head and get_settings().log_db_sql:
                logger.info("Slowest SQL: %s", report.slowest_sql_head)
    finally:
        reset_run_id(token)


@dataclass
class BenchmarkConfig:
    batch_size: int
    batch_count: int
    report_every: int
    start_offset_days: int
    tick_ms: int
    base_temperature: float
    jitter: float
    max_sensors: int = MAX_SENSORS
    seed: Optional[int] = None

    @classmethod
    def from_settings(cls, **overrides) -> "BenchmarkConfig":
        s = get_settings()
        values = dict(
            batch_size=s.bench_batch_size,
            batch_count=s.bench_batch_count,
            report_every=s.bench_report_every,
            start_offset_days=s.bench_start_offset_days,
            tick_ms=s.bench_tick_ms,
            base_temperature=s.base_temperature,
            jitter=s.bench_temperature_jitter,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def run_strategy(engine: Engine, strategy: str, config: BenchmarkConfig) -> LoadReport:
    loader = get_loader(strategy)
    rng = random.Random(config.seed)
    start_time = datetime.now(timezone.utc) + timedelta(days=config.start_offset_days)

    with measure_load(engine, f"fn {strategy}") as report:
        for batch, tick in generate_batches(
            start_time,
            config.base_temperature,
            config.batch_count,
            batch_size=config.batch_size,
            tick_ms=config.tick_ms,
            jitter=config.jitter,
            max_sensors=config.max_sensors,
            rng=rng,
        ):
            report.rows += loader(engine, batch, tick, config.report_every)

    return report


def run_benchmark(
    engine: Engine,
    strategies: Sequence[str] = ("insert", "insert-str", "copy"),
    config: Optional[BenchmarkConfig] = None,
) -> List[LoadReport]:
    """Run each strategy in turn over freshly generated batches."""
    config = config or BenchmarkConfig.from_settings()
    for strategy in strategies:
        get_loader(strategy)  # fail fast on typos before loading anything

    reports: List[LoadReport] = []
    for strategy in strategies:
        reports.append(run_strategy(engine, strategy, config))
    return reports
