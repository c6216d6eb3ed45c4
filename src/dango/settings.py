"""User settings stored in the database, including the chosen algorithm."""
import logging

from dango.db import get_connection
from dango.models import Algorithm

logger = logging.getLogger(__name__)

ALGORITHM_KEY = "algorithm"


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def load_algorithm(db_path: str) -> Algorithm:
    """Return the saved algorithm, defaulting to FSRS."""
    value = get_setting(db_path, ALGORITHM_KEY, Algorithm.FSRS.value)
    try:
        return Algorithm(value)
    except ValueError:
        logger.warning("Unknown algorithm setting %r, using fsrs", value)
        return Algorithm.FSRS


def save_algorithm(db_path: str, algorithm: Algorithm) -> None:
    set_setting(db_path, ALGORITHM_KEY, Algorithm(algorithm).value)
