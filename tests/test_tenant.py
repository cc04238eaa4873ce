from mongo_tenant.db.tenant import (
    build_assignment_fragment,
    build_filter_fragment,
    enforce_tenant_filter,
    enforce_tenant_pipeline,
    enforce_tenant_update,
)


def test_fragments_are_plain_key_value():
    assert build_filter_fragment("tenantId", "t1") == {"tenantId": "t1"}
    assert build_assignment_fragment("orgId", 7) == {"orgId": 7}


def test_filter_none_becomes_tenant_only():
    assert enforce_tenant_filter("tenantId", "t1") == {"tenantId": "t1"}
    assert enforce_tenant_filter("tenantId", "t1", None) == {"tenantId": "t1"}


def test_filter_bound_tenant_wins():
    for caller_value in ("t2", {"$ne": "t1"}, {"$in": ["t1", "t2"]}, None):
        f = enforce_tenant_filter("tenantId", "t1", {"tenantId": caller_value, "name": "x"})
        assert f == {"tenantId": "t1", "name": "x"}


def test_filter_does_not_mutate_input_and_keeps_logical_operators():
    base = {"$or": [{"a": 1}, {"tenantId": "t2"}]}
    f = enforce_tenant_filter("tenantId", "t1", base)
    assert f == {"$or": [{"a": 1}, {"tenantId": "t2"}], "tenantId": "t1"}
    assert base == {"$or": [{"a": 1}, {"tenantId": "t2"}]}


def test_pipeline_starts_with_tenant_match():
    stages = enforce_tenant_pipeline("tenantId", "t1", [{"$group": {"_id": None}}])
    assert stages == [{"$match": {"tenantId": "t1"}}, {"$group": {"_id": None}}]
    assert enforce_tenant_pipeline("tenantId", "t1") == [{"$match": {"tenantId": "t1"}}]


def test_update_strips_flat_and_set_assignments():
    u = enforce_tenant_update(
        "tenantId",
        "t1",
        {"tenantId": "t2", "someField": "v", "$set": {"tenantId": "t2"}},
    )
    assert u == {"someField": "v", "tenantId": "t1"}


def test_update_keeps_other_set_fields():
    u = enforce_tenant_update("tenantId", "t1", {"$set": {"tenantId": "t2", "a": 1}, "$inc": {"n": 1}})
    assert u == {"$set": {"a": 1}, "$inc": {"n": 1}, "tenantId": "t1"}


def test_update_protects_against_unset_and_rename():
    u = enforce_tenant_update(
        "tenantId",
        "t1",
        {"$unset": {"tenantId": ""}, "$rename": {"other": "tenantId", "a": "b"}},
    )
    assert u == {"$rename": {"a": "b"}, "tenantId": "t1"}


def test_update_overwrite_reasserts_bound_value():
    u = enforce_tenant_update("tenantId", "t1", {"tenantId": "t2", "someField": "v"}, overwrite=True)
    assert u == {"tenantId": "t1", "someField": "v"}


def test_update_with_custom_key_and_empty_input():
    assert enforce_tenant_update("orgId", 3, None) == {"orgId": 3}
    assert enforce_tenant_update("orgId", 3, {"tenantId": "x"}) == {"tenantId": "x", "orgId": 3}


def test_pipeline_update_gets_closing_tenant_stage():
    stages = [{"$set": {"tenantId": "t2", "a": 1}}, {"$unset": "b"}]
    u = enforce_tenant_update("tenantId", "t1", stages)
    assert u == [
        {"$set": {"tenantId": "t2", "a": 1}},
        {"$unset": "b"},
        {"$set": {"tenantId": "t1"}},
    ]
    assert len(stages) == 2
    assert enforce_tenant_update("orgId", 3, []) == [{"$set": {"orgId": 3}}]
