"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]


def _alembic(*args: str, db_url: str) -> subprocess.CompletedProcess:
    env = {**os.environ, "HSCAN_DATABASE_URL": db_url}
    return subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
        env=env,
    )


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'migrations.db'}"


def test_alembic_upgrade_head(db_url) -> None:
    """alembic upgrade head succeeds without errors."""
    result = _alembic("upgrade", "head", db_url=db_url)
    assert result.returncode == 0, f"alembic upgrade failed: {result.stderr}"


def test_alembic_current_shows_head(db_url) -> None:
    """alembic current shows the latest revision."""
    _alembic("upgrade", "head", db_url=db_url)
    result = _alembic("current", db_url=db_url)
    assert result.returncode == 0
    assert "001_progression_tables" in result.stdout


def test_alembic_downgrade_base(db_url) -> None:
    _alembic("upgrade", "head", db_url=db_url)
    result = _alembic("downgrade", "base", db_url=db_url)
    assert result.returncode == 0, f"alembic downgrade failed: {result.stderr}"
