# backend/metrics_seed/models.py
from sqlalchemy import Column, DateTime, Integer, Numeric, Table
from sqlalchemy.sql import text

from metrics_seed.db.base import Base

# Cross-DB timestamp default (SQLite + Postgres)
DB_NOW = text("CURRENT_TIMESTAMP")

METRICS_TABLE = "metrics"

# No primary key: rows are append-only readings, so this is a Core Table
# rather than a mapped class.
metrics = Table(
    METRICS_TABLE,
    Base.metadata,
    Column("created", DateTime(timezone=True), server_default=DB_NOW, nullable=False),
    Column("sensor_id", Integer, nullable=False),
    Column("temperature", Numeric, nullable=False),
)

COLUMNS = ("created", "sensor_id", "temperature")
