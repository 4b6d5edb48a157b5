"""Pytest fixtures for tests against a live PostgreSQL server.

Each module gets a throwaway database created from POSTGRES_* settings; the
tests are skipped when the server cannot be reached.
"""

import logging
import uuid

import psycopg2
import pytest

from sqlcheck.db.connection.onto import PostgresConfig
from sqlcheck.db.postgres import PostgresConnection, get_schema

logger = logging.getLogger(__name__)

MOCK_SCHEMA = [
    "CREATE TYPE mood AS ENUM ('sad', 'ok', 'happy')",
    "CREATE DOMAIN email AS text",
    """
    CREATE TABLE users (
        user_id bigserial PRIMARY KEY,
        username text NOT NULL,
        active bit NOT NULL,
        salary money NOT NULL,
        nickname text,
        contact email,
        current_mood mood,
        roles text[] NOT NULL DEFAULT '{}',
        codes uuid[] NOT NULL DEFAULT '{}',
        scores integer[],
        created_at timestamptz NOT NULL DEFAULT now()
    )
    """,
    "CREATE VIEW active_users AS SELECT user_id, username FROM users WHERE active = B'1'",
    """
    CREATE FUNCTION Increment(val integer) RETURNS integer
    LANGUAGE sql IMMUTABLE AS 'SELECT val + 1'
    """,
    "CREATE SCHEMA billing",
    "CREATE TABLE billing.invoices (invoice_id integer PRIMARY KEY, amount numeric)",
]


def _admin_connection(config: PostgresConfig):
    conn = psycopg2.connect(config.to_dsn())
    conn.autocommit = True
    return conn


@pytest.fixture(scope="module")
def mock_schema():
    """DDL loaded into the throwaway database; test modules may override it."""
    return MOCK_SCHEMA


@pytest.fixture(scope="module")
def conn_conf(mock_schema):
    """Create a throwaway database with the mock schema and drop it afterwards."""
    base = PostgresConfig.from_env().model_copy(update={"connect_timeout": 2})
    try:
        admin = _admin_connection(base)
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL is not reachable at {base}: {e}")

    database = f"sqlcheck_test_{uuid.uuid4().hex[:12]}"
    with admin.cursor() as cursor:
        cursor.execute(f'CREATE DATABASE "{database}"')
    logger.info(f"Created test database {database}")

    config = base.with_database(database)
    conn = _admin_connection(config)
    with conn.cursor() as cursor:
        for statement in mock_schema:
            cursor.execute(statement)
    conn.close()

    yield config

    with admin.cursor() as cursor:
        cursor.execute(f'DROP DATABASE IF EXISTS "{database}" WITH (FORCE)')
    admin.close()
    logger.info(f"Dropped test database {database}")


@pytest.fixture(scope="function")
def postgres_conn(conn_conf):
    """Create a PostgreSQL connection for testing."""
    conn = PostgresConnection(conn_conf)
    yield conn
    conn.close()


@pytest.fixture(scope="module")
def schema(conn_conf):
    return get_schema(conn_conf)
