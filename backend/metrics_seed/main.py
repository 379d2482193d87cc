# backend/metrics_seed/main.py

"""
Command line entry point.

    metrics-seed check
    metrics-seed init-db [--if-not-exists]
    metrics-seed seed [--rows N] [--sensors N] [--create]
    metrics-seed bench [--strategy insert --strategy copy] [--batch-size N] [--batch-count N]

Equivalent: `python -m metrics_seed.main <command> ...` from backend/.
"""

import argparse
import logging
import sys
import uuid
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from metrics_seed.core.config import get_settings
from metrics_seed.core.errors import SeedError, install_run_id_logging, log_exception_with_context
from metrics_seed.core.run_context import set_run_id
from metrics_seed.db.init_db import create_metrics_table
from metrics_seed.db.session import make_engine, mask_url
from metrics_seed.services.bench import BenchmarkConfig, run_benchmark
from metrics_seed.services.loaders import LOADERS
from metrics_seed.services.seed import count_metrics, seed_metrics

logger = logging.getLogger("metrics_seed")

# --- Logging setup ---
# A LogRecordFactory runs for EVERY record, globally, so run_id always exists
# even for third-party loggers the filter is not attached to.
_old_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    if not hasattr(record, "run_id"):
        record.run_id = "-"
    return record


def configure_logging(level: Optional[str] = None) -> None:
    logging.setLogRecordFactory(_record_factory)
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(levelname)s %(name)s run_id=%(run_id)s %(message)s",
    )
    install_run_id_logging()


# --- Commands ---

def _cmd_check(engine: Engine, args: argparse.Namespace) -> int:
    print("Using DB URL (masked):", mask_url(engine.url.render_as_string(hide_password=False)))
    with engine.connect() as conn:
        one = conn.execute(text("SELECT 1")).scalar()
    print("select 1 ->", one)
    return 0


def _cmd_init_db(engine: Engine, args: argparse.Namespace) -> int:
    created = create_metrics_table(engine, if_not_exists=args.if_not_exists)
    print("Created table metrics." if created else "Table metrics already exists.")
    return 0


def _cmd_seed(engine: Engine, args: argparse.Namespace) -> int:
    if args.create:
        create_metrics_table(engine, if_not_exists=True)
    inserted = seed_metrics(engine, args.rows, sensor_count=args.sensors)
    print(f"Inserted {inserted} rows (table now has {count_metrics(engine)}).")
    return 0


def _cmd_bench(engine: Engine, args: argparse.Namespace) -> int:
    config = BenchmarkConfig.from_settings(
        batch_size=args.batch_size,
        batch_count=args.batch_count,
        report_every=args.report_every,
        seed=args.random_seed,
    )
    strategies = args.strategy or list(LOADERS)
    for report in run_benchmark(engine, strategies, config):
        print()
        print("\n".join(report.lines()))
    return 0


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return parsed


def _non_negative_int(value: str) -> int:
    parsed = int(value)
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metrics-seed",
        description="Create and seed the synthetic `metrics` table, or benchmark bulk loads into it.",
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Connect and run SELECT 1")
    check.set_defaults(func=_cmd_check)

    init_db = sub.add_parser("init-db", help="Create the metrics table")
    init_db.add_argument(
        "--if-not-exists",
        action="store_true",
        help="Skip instead of failing when the table already exists",
    )
    init_db.set_defaults(func=_cmd_init_db)

    seed = sub.add_parser("seed", help="Bulk insert synthetic readings")
    seed.add_argument("--rows", type=_non_negative_int, default=None, help="Rows to generate (default SEED_ROWS)")
    seed.add_argument("--sensors", type=_positive_int, default=None, help="Sensor ids cycle 1..N (default SENSOR_COUNT)")
    seed.add_argument("--create", action="store_true", help="Create the table first if missing")
    seed.set_defaults(func=_cmd_seed)

    bench = sub.add_parser("bench", help="Benchmark load strategies")
    bench.add_argument(
        "--strategy",
        action="append",
        choices=sorted(LOADERS),
        help="Strategy to run (repeatable; default: all)",
    )
    bench.add_argument("--batch-size", type=_positive_int, default=None)
    bench.add_argument("--batch-count", type=_positive_int, default=None)
    bench.add_argument("--report-every", type=_positive_int, default=None)
    bench.add_argument("--random-seed", type=int, default=None)
    bench.set_defaults(func=_cmd_bench)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    set_run_id(f"{args.command}-{uuid.uuid4().hex[:8]}")

    engine = make_engine(args.database_url)
    try:
        return args.func(engine, args)
    except (SeedError, SQLAlchemyError) as exc:
        log_exception_with_context(
            f"{args.command} failed",
            extra={"error": type(exc).__name__, "code": getattr(getattr(exc, "code", None), "value", None)},
        )
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
