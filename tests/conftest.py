import itertools

import mongomock
import pytest

from mongo_tenant import Connection, Schema, mongo_tenant

_names = itertools.count()


@pytest.fixture
def connection():
    # in-memory mongo instead of a real server
    mock_client = mongomock.MongoClient()
    return Connection(mock_client["test_db"])


@pytest.fixture
def make_model(connection):
    """
    make_model({"someField": str}) -> tenant aware model with a fresh collection.
    with_plugin=False gives a plain model; tenant={...} passes plugin options.
    """

    def _make(fields=None, *, with_plugin=True, tenant=None, **schema_options):
        schema = Schema(fields, **schema_options)
        if with_plugin:
            mongo_tenant(schema, **(tenant or {}))
        return connection.model(f"TestModel{next(_names)}", schema)

    return _make
