# mongo_tenant/stamper.py
from __future__ import annotations

from typing import Any

from mongo_tenant.db.tenant import build_assignment_fragment
from mongo_tenant.document import Document


def stamp(document: Document, tenant_key: str, tenant_id: Any) -> Document:
    """
    Force the bound tenant onto a document built under a tenant handle.
    Whatever the caller put in the tenant field is overwritten.
    """
    for key, value in build_assignment_fragment(tenant_key, tenant_id).items():
        document[key] = value
    document.mark_tenant_context()
    return document

