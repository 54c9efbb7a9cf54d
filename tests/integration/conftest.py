import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from certdocs.config.settings import Settings
from certdocs.database.connection import apply_schema, close_pool, get_connection, init_pool
from certdocs.database.models import Issuer


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "certdocs_test")
    return Settings(storage_backend="memory")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
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
def integration_cleanup() -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "certification_jobs":
                    cur.execute("DELETE FROM certification_jobs WHERE id = %s", (row_id,))
            for table, row_id in cleanup:
                if table == "entities":
                    cur.execute("DELETE FROM verified_documents WHERE entity_id = %s", (row_id,))
                    cur.execute("DELETE FROM billing_documents WHERE entity_id = %s", (row_id,))
                    cur.execute("DELETE FROM entities WHERE id = %s", (row_id,))
        conn.commit()


@pytest.fixture
def seed_issuer(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
) -> Issuer:
    slug = f"it-{uuid.uuid4().hex[:12]}"
    with db_conn.cursor() as cur:
        cur.execute(
            "INSERT INTO entities (slug, name) VALUES (%s, %s) RETURNING id",
            (slug, "Integration Holdings"),
        )
        row = cur.fetchone()
        assert row is not None
        entity_id = row[0]
    db_conn.commit()
    integration_cleanup.append(("entities", entity_id))
    return Issuer(id=str(entity_id), slug=slug, name="Integration Holdings")
