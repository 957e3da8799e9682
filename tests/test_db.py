"""Tests for database initialization and connection management."""
from study_planner.db import init_db, get_connection


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}
    assert {"topics", "reviews", "subjects", "user_settings"}.issubset(tables)
    conn.close()


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)  # should not raise
    conn = get_connection(tmp_db)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    assert len(cursor.fetchall()) > 0
    conn.close()


def test_init_db_creates_parent_dir(tmp_path):
    db_path = str(tmp_path / "nested" / "planner.db")
    init_db(db_path)
    assert (tmp_path / "nested" / "planner.db").exists()


def test_get_connection_returns_row_factory(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO user_settings (user_id, key, value) VALUES ('u', 'test', 'val')")
    row = conn.execute("SELECT key, value FROM user_settings WHERE key='test'").fetchone()
    assert row["key"] == "test"
    conn.close()


def test_foreign_keys_enabled(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    conn.close()
