import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from doclyze.config.settings import Settings
from doclyze.database.connection import close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "doclyze_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1 FROM documents LIMIT 1")
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env and apply doclyze/database/schema.sql"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def seed_project(db_conn: psycopg.Connection[Any]) -> Generator[int, None, None]:
    with db_conn.cursor() as cur:
        cur.execute(
            "INSERT INTO projects (name, owner_id) VALUES (%s, %s) RETURNING id",
            ("Integration Project", "integration-user"),
        )
        row = cur.fetchone()
        assert row is not None
        project_id = int(row[0])
    db_conn.commit()
    try:
        yield project_id
    finally:
        with db_conn.cursor() as cur:
            cur.execute("DELETE FROM projects WHERE id = %s", (project_id,))
        db_conn.commit()


@pytest.fixture
def seed_document(db_conn: psycopg.Connection[Any], seed_project: int) -> int:
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO documents
            (project_id, file_name, storage_locator, file_size_bytes, mime_type)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (seed_project, "plan.pdf", "file://doclyze/plan.pdf", 1024, "application/pdf"),
        )
        row = cur.fetchone()
        assert row is not None
        document_id = int(row[0])
    db_conn.commit()
    return document_id
