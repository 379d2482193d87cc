# backend/tests/conftest.py
from __future__ import annotations

import pytest

from metrics_seed.core.config import get_settings
from metrics_seed.db.init_db import create_metrics_table
from metrics_seed.db.session import make_engine


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    # Settings are lru_cached; every test starts from a clean env read.
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'metrics.db'}"


@pytest.fixture()
def engine(db_url):
    eng = make_engine(db_url)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture()
def metrics_engine(engine):
    """Engine whose database already has the metrics table."""
    create_metrics_table(engine)
    return engine
