import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ.setdefault("ENV", "test")

import subprocess
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

PROJECT_ROOT = Path(__file__).resolve().parents[2]
_SQLITE_TEST_DB = PROJECT_ROOT / "tradebooks_test.db"

TEST_DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{_SQLITE_TEST_DB}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from app import database, models  # noqa: F401
from app.services import settings_service


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if url.drivername.startswith("sqlite"):
        if url.database and os.path.exists(url.database):
            os.remove(url.database)
        return

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


def _empty_tables() -> None:
    with database.engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            rows = conn.execute(
                text(
                    """
                    SELECT tablename
                    FROM pg_tables
                    WHERE schemaname = 'public'
                      AND tablename <> 'alembic_version'
                    """
                )
            ).fetchall()
            table_names = [row[0] for row in rows]
            if table_names:
                quoted = ", ".join([f'"public"."{name}"' for name in table_names])
                conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY CASCADE"))
            return

        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    _ensure_database_exists(TEST_DATABASE_URL)

    env = os.environ.copy()
    env["DATABASE_URL"] = TEST_DATABASE_URL

    subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        check=True,
        cwd=PROJECT_ROOT,
        env=env,
    )

    database.configure_database()


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _empty_tables()
    yield
    _empty_tables()


@pytest.fixture
def subscribe(_truncate_tables_between_tests):
    """Put a company on a plan (business/active unless told otherwise)."""

    def _subscribe(company_id: int, tier: str = "business", status: str = "active", **fields) -> None:
        db = database.SessionLocal()
        try:
            settings_service.update_subscription(
                db,
                company_id,
                {"subscription_tier": tier, "subscription_status": status, **fields},
            )
            db.commit()
        finally:
            db.close()

    return _subscribe
