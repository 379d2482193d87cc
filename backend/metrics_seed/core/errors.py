# backend/metrics_seed/core/errors.py

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Optional

from metrics_seed.core.run_context import get_run_id

logger = logging.getLogger("metrics_seed")


class SeedErrorCode(str, Enum):
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    UNSUPPORTED_DIALECT = "UNSUPPORTED_DIALECT"
    DATABASE_ERROR = "DATABASE_ERROR"


class SeedError(Exception):
    """Base error for seeding and load operations; carries a stable code."""

    code: SeedErrorCode = SeedErrorCode.DATABASE_ERROR

    def __init__(self, message: str, *, code: Optional[SeedErrorCode] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidSeedParameters(SeedError):
    code = SeedErrorCode.INVALID_PARAMETERS


class UnsupportedDialectError(SeedError):
    code = SeedErrorCode.UNSUPPORTED_DIALECT

    def __init__(self, operation: str, dialect: str) -> None:
        super().__init__(f"{operation} is not supported on dialect {dialect!r}")
        self.operation = operation
        self.dialect = dialect


class RunIdFilter(logging.Filter):
    """
    Injects run_id into every LogRecord as `record.run_id`.
    Safe outside a run (falls back to "-").
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            record.run_id = get_run_id()
        except Exception:
            record.run_id = "-"
        return True


def install_run_id_logging(
    logger_name: str = "metrics_seed",
    *,
    include_root: bool = True,
) -> None:
    """
    Attach RunIdFilter so logs can include %(run_id)s in the formatter.
    Safe to call repeatedly: a logger that already has one is left alone.
    """
    filt = RunIdFilter()

    targets = [logging.getLogger(logger_name)]
    if include_root:
        targets.append(logging.getLogger())

    for target in targets:
        if not any(isinstance(f, RunIdFilter) for f in target.filters):
            target.addFilter(filt)


def log_exception_with_context(
    message: str,
    *,
    run_id: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """
    Log an exception with stack trace and the current run context.

    Use inside exception handlers:

        try:
            ...
        except SQLAlchemyError:
            log_exception_with_context("seed failed", extra={"rows": rows})
            raise
    """
    rid = run_id or _safe_run_id()
    payload: dict[str, Any] = dict(extra or {})

    # logger.exception includes the stack trace of the currently-handled exception
    logger.exception("%s failed_run_id=%s context=%s", message, rid, payload)


def _safe_run_id() -> str:
    try:
        return get_run_id() or "-"
    except Exception:
        return "-"
