"""Pytest configuration shared by the API and store tests."""

import os
import tempfile
from pathlib import Path

import pytest

# 設定クラスは import 時点で環境変数を読むため、パッケージより先に一時 DB を指定する。
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="nihongo-srs-tests-"))
os.environ.setdefault("SRS_DB_PATH", str(_TEST_DATA_DIR / "srs.sqlite3"))
os.environ.setdefault("STRICT_MODE", "false")

from nihongo_srs.store import SRSSQLiteStore  # noqa: E402
from tests.helpers import FixedClock  # noqa: E402


@pytest.fixture()
def store(tmp_path: Path) -> SRSSQLiteStore:
    return SRSSQLiteStore(db_path=str(tmp_path / "srs.sqlite3"))


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()
