import random

import pytest

from dango.db import init_db
from dango.fsrs import FSRSParameters
from dango.scheduler import Scheduler

NOW = 1_700_000_000_000  # 2023-11-14T22:13:20Z


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_dango.db")
    return db_path


@pytest.fixture
def db(tmp_db):
    """An initialized temporary database."""
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def steady_scheduler():
    """FSRS scheduler with fuzz disabled."""
    return Scheduler(parameters=FSRSParameters(enable_fuzz=False))


@pytest.fixture
def seeded_rng():
    return random.Random(1234)
