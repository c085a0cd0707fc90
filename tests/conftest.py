import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def temp_db(tmp_path):
    import db

    previous = db.DB_PATH
    db_path = tmp_path / "test.db"
    db.configure(str(db_path))
    db.init()
    yield str(db_path)
    db.configure(previous)


@pytest.fixture(autouse=True)
def _analytics_env(monkeypatch):
    # Blank values fall back to defaults and let monkeypatch undo later writes.
    for var in ("CELERATION_AIM_FLUENCY", "CELERATION_AIM_ERROR", "CELERATION_MOVING_WINDOW"):
        monkeypatch.setenv(var, "")
