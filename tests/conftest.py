"""
Shared pytest setup and fixtures
Run: pytest tests -v
"""
import os
import sys
from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# put src/ on the path so the tests run without an install
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "src"))

# the settings models need an API key; tests never talk to the real endpoint
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from pgask.core.config import LLMSettings  # noqa: E402
from pgask.db.session import Database  # noqa: E402


class SQLiteDatabase(Database):
    """Database stand-in: every connect() shares one in-memory SQLite connection."""

    def __init__(self):
        super().__init__("sqlite://")
        self.engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        self.opened = []
        self.closed = 0

    @contextmanager
    def connect(self, purpose="query"):
        self.opened.append(purpose)
        conn = self.engine.connect()
        try:
            yield conn
        finally:
            conn.close()
            self.closed += 1

    def run(self, *statements):
        with self.engine.connect() as conn:
            for statement in statements:
                conn.exec_driver_sql(statement)
            conn.commit()


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.content is None:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    """Just enough of the OpenAI client surface: client.chat.completions.create()."""

    def __init__(self, content=None, error=None):
        self.completions = FakeCompletions(content=content, error=error)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def sqlite_db():
    db = SQLiteDatabase()
    yield db
    db.engine.dispose()


@pytest.fixture
def users_db(sqlite_db):
    """SQLite database with a users table and a fake information_schema.columns."""
    # ATTACH must run before any INSERT opens a transaction
    sqlite_db.run(
        "ATTACH DATABASE ':memory:' AS information_schema",
        "CREATE TABLE users (id INTEGER NOT NULL, name TEXT)",
        "INSERT INTO users (id, name) VALUES (1, 'ada'), (2, 'grace')",
        """
        CREATE TABLE information_schema.columns (
            table_schema TEXT,
            table_name TEXT,
            column_name TEXT,
            data_type TEXT,
            is_nullable TEXT,
            ordinal_position INTEGER
        )
        """,
        # inserted out of order on purpose
        """
        INSERT INTO information_schema.columns VALUES
            ('public', 'users', 'name', 'text', 'YES', 2),
            ('public', 'orders', 'id', 'integer', 'NO', 1),
            ('public', 'users', 'id', 'integer', 'NO', 1),
            ('public', 'orders', 'total', 'numeric', 'YES', 2),
            ('pg_catalog', 'pg_class', 'oid', 'oid', 'NO', 1)
        """,
    )
    return sqlite_db


@pytest.fixture
def llm_settings():
    return LLMSettings(api_key="test-key", model="gpt-4o")


@pytest.fixture
def fake_client_factory():
    return FakeOpenAI


@pytest.fixture
def pg_url():
    """Live PostgreSQL for integration tests, only when explicitly configured."""
    url = os.getenv("PGASK_TEST_DATABASE_URL")
    if not url:
        pytest.skip("PGASK_TEST_DATABASE_URL not set")
    return url

