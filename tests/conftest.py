"""
Shared fixtures for dealerdb tests.

Every session fixture opens its own SQLite file in a temporary directory, so
tests never share state.
"""

import os
import tempfile

import pytest

from dealerdb.engine import ConnectionSession, SchemaBootstrapper


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def session(data_dir):
    """Session on an empty SQLite file."""
    session = ConnectionSession()
    session.open_embedded(os.path.join(data_dir, "dealer.db"))
    yield session
    session.close()


@pytest.fixture
def store(session):
    """Session with the tables created."""
    SchemaBootstrapper().bootstrap(session)
    return session


@pytest.fixture
def count_rows(session):
    """Row counter for a table on the session."""

    def count(table):
        with session.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            return cursor.fetchone()[0]

    return count
