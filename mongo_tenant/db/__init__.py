# mongo_tenant/db/__init__.py
from __future__ import annotations

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from mongo_tenant.settings import settings

_client: Optional[MongoClient] = None
_connection = None


def get_client() -> MongoClient:
    """
    One MongoClient per process, created on first use (not on import).
    """
    global _client
    if _client is None:
        _client = MongoClient(settings.mongo_uri)
    return _client


def get_db(name: Optional[str] = None) -> Database:
    return get_client()[name or settings.mongo_db]


def get_connection():
    """
    Default model registry bound to the configured database.
    """
    global _connection
    if _connection is None:
        from mongo_tenant.model import Connection

        _connection = Connection(get_db())
    return _connection
