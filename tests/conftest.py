import pytest


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def tmp_cache(tmp_path):
    """Provide a temporary local cache path for tests."""
    return str(tmp_path / "cache" / "planner_cache.json")


@pytest.fixture
def missing_db(tmp_path):
    """A database path that cannot be opened."""
    return str(tmp_path / "no_such_dir" / "planner.db")
