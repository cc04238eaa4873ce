# mongo_tenant/db/tenant.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

log = logging.getLogger(__name__)

# operators that could write, move or clear the tenant field
TENANT_SENSITIVE_OPERATORS = ("$set", "$setOnInsert", "$unset", "$rename")


# -------------------------
# Predicate builder
# -------------------------
def build_filter_fragment(tenant_key: str, tenant_id: Any) -> Dict[str, Any]:
    return {tenant_key: tenant_id}


def build_assignment_fragment(tenant_key: str, tenant_id: Any) -> Dict[str, Any]:
    return {tenant_key: tenant_id}


# -------------------------
# Filters
# -------------------------
def enforce_tenant_filter(
    tenant_key: str,
    tenant_id: Any,
    base_filter: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Hard rule: every query through a tenant handle includes the tenant key.
    Callers cannot override it; a tenant value in base_filter is discarded.
    """
    f = dict(base_filter or {})
    # Do NOT allow callers to override the tenant key
    f.update(build_filter_fragment(tenant_key, tenant_id))
    return f


def enforce_tenant_pipeline(
    tenant_key: str,
    tenant_id: Any,
    pipeline: Optional[List[Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Aggregations always start by matching the bound tenant.
    """
    return [{"$match": build_filter_fragment(tenant_key, tenant_id)}] + list(pipeline or [])


# -------------------------
# Updates
# -------------------------
def _strip_tenant_key(update: Dict[str, Any], tenant_key: str) -> None:
    update.pop(tenant_key, None)
    for op in TENANT_SENSITIVE_OPERATORS:
        section = update.get(op)
        if not isinstance(section, dict) or tenant_key not in section:
            continue
        section = dict(section)
        section.pop(tenant_key)
        if section:
            update[op] = section
        else:
            del update[op]

    # a rename *onto* the tenant key would overwrite it too
    renames = update.get("$rename")
    if isinstance(renames, dict):
        kept = {src: dst for src, dst in renames.items() if dst != tenant_key}
        if kept:
            update["$rename"] = kept
        else:
            del update["$rename"]


def enforce_tenant_update(
    tenant_key: str,
    tenant_id: Any,
    update: Union[Dict[str, Any], List[Dict[str, Any]], None] = None,
    overwrite: bool = False,
) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Make an update document safe to run under the bound tenant filter.

    - default: any caller assignment to the tenant key (flat, or inside one
      of the tenant-sensitive operators) is dropped, then the bound value is
      re-added as a flat top-level field.
    - overwrite: the document is a full replacement. The caller's tenant
      value is left alone but the bound value is written over it, so the
      replaced document stays in its tenant.

    A pipeline update (list of stages) gets a closing `$set` stage for the
    tenant key instead.

    Nothing else is validated here; the store rejects malformed updates.
    """
    if isinstance(update, list):
        log.debug("tenant pipeline update key=%s tenant=%r", tenant_key, tenant_id)
        return list(update) + [{"$set": build_assignment_fragment(tenant_key, tenant_id)}]
    u = dict(update or {})
    if not overwrite:
        _strip_tenant_key(u, tenant_key)
    u.update(build_assignment_fragment(tenant_key, tenant_id))
    log.debug("tenant update rewritten key=%s tenant=%r overwrite=%s", tenant_key, tenant_id, overwrite)
    return u

