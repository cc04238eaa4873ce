# mongo_tenant/guard.py
from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def shares_tenant_scope(source, target) -> bool:
    """
    True when `source` is tenant-bound and `target` is tenant aware on the
    very same tenant key. Anything else means no tenant scoping for target.
    """
    if not source.has_tenant_context:
        return False
    if not target.is_tenant_aware():
        return False
    return target.get_tenant_id_key() == source.get_tenant_id_key()


def resolve_populate_model(source, target):
    """
    Model to load referenced documents through when `source` results follow
    a reference into `target`.
    """
    if shares_tenant_scope(source, target):
        return target.by_tenant(source.tenant_id)
    if source.has_tenant_context:
        log.debug("populate into %s runs without tenant scope", target.name)
    return target
