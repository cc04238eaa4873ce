import logging

import mongomock
import pytest

from mongo_tenant import Connection, Schema, mongo_tenant
from mongo_tenant import db as tenant_db
from mongo_tenant.settings import configure_logging, settings


@pytest.fixture
def mock_client(monkeypatch):
    # swap the driver for mongomock and start from a clean cache
    monkeypatch.setattr(tenant_db, "MongoClient", mongomock.MongoClient)
    monkeypatch.setattr(tenant_db, "_client", None)
    monkeypatch.setattr(tenant_db, "_connection", None)
    yield


def test_client_is_created_once(mock_client):
    client = tenant_db.get_client()

    assert isinstance(client, mongomock.MongoClient)
    assert tenant_db.get_client() is client


def test_get_db_uses_configured_name(mock_client):
    assert tenant_db.get_db().name == settings.mongo_db
    assert tenant_db.get_db("other").name == "other"


def test_default_connection(mock_client):
    conn = tenant_db.get_connection()

    assert isinstance(conn, Connection)
    assert tenant_db.get_connection() is conn

    Note = conn.model("Note", mongo_tenant(Schema({"text": str})))
    Note.by_tenant("t1").create({"text": "hi"})
    assert Note.by_tenant("t1").count_documents() == 1
    assert Note.by_tenant("t2").count_documents() == 0


def test_configure_logging_uses_settings_level(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))

    configure_logging()
    configure_logging("debug")

    assert calls[0]["level"] == settings.log_level.upper()
    assert calls[1]["level"] == "DEBUG"


def test_rewrites_are_logged_at_debug(caplog, connection):
    Note = connection.model("LoggedNote", mongo_tenant(Schema()))

    with caplog.at_level(logging.DEBUG, logger="mongo_tenant"):
        Note.by_tenant("t1").update_many({}, {"a": 1})

    assert "tenant update rewritten key=tenantId tenant='t1'" in caplog.text
