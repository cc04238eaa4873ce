import pytest

from mongo_tenant import Ref, UnknownModelError
from mongo_tenant.guard import resolve_populate_model, shares_tenant_scope


def _parent_with_children(make_model, child_kwargs, child_key="tenantId"):
    ChildModel = make_model(**child_kwargs)
    ParentModel = make_model({"childs": [Ref(ChildModel.name)]})

    child1, child2 = ChildModel.create({child_key: "tenant1"}, {child_key: "tenant2"})
    ParentModel.create({"tenantId": "tenant1", "childs": [child1.id, child2.id]})
    return ParentModel, ChildModel


def test_populate_passes_down_tenant_context(make_model):
    ParentModel, _ = _parent_with_children(make_model, {})

    matches = ParentModel.by_tenant("tenant1").find().populate("childs").exec()
    assert len(matches) == 1

    parent = matches[0]
    assert len(parent["childs"]) == 1
    assert parent["childs"][0]["tenantId"] == "tenant1"
    assert parent["childs"][0].has_tenant_context


def test_populate_skips_tenant_context_for_plain_models(make_model):
    ParentModel, _ = _parent_with_children(make_model, {"with_plugin": False})

    parent = ParentModel.by_tenant("tenant1").find().populate("childs").first()
    assert len(parent["childs"]) == 2
    assert not parent["childs"][0].has_tenant_context
    assert not parent["childs"][1].has_tenant_context


def test_populate_skips_tenant_context_for_other_tenant_key(make_model):
    ParentModel, _ = _parent_with_children(
        make_model, {"tenant": {"tenant_id_key": "otherTenantId"}}, child_key="otherTenantId"
    )

    parent = ParentModel.by_tenant("tenant1").find().populate("childs").first()
    assert len(parent["childs"]) == 2
    assert {c["otherTenantId"] for c in parent["childs"]} == {"tenant1", "tenant2"}
    assert not any(c.has_tenant_context for c in parent["childs"])


def test_populate_without_tenant_context_returns_all(make_model):
    ParentModel, _ = _parent_with_children(make_model, {})

    parent = ParentModel.find().populate("childs").first()
    assert len(parent["childs"]) == 2


def test_populate_single_reference(make_model):
    Owner = make_model()
    Item = make_model({"owner": Ref(Owner.name)})

    mine = Owner.create({"tenantId": "t1"})
    theirs = Owner.create({"tenantId": "t2"})
    Item.by_tenant("t1").create({"owner": mine.id}, {"owner": theirs.id})

    items = Item.by_tenant("t1").find().sort("_id").populate("owner").exec()
    owners = [item["owner"] for item in items]
    assert owners[0].id == mine.id
    assert owners[1] is None


def test_populated_document_saves_references(make_model):
    ParentModel, ChildModel = _parent_with_children(make_model, {})

    parent = ParentModel.by_tenant("tenant1").find().populate("childs").first()
    parent["name"] = "p"
    parent.save()

    child1 = ChildModel.find_one({"tenantId": "tenant1"})
    child2 = ChildModel.find_one({"tenantId": "tenant2"})
    raw = ParentModel.collection.find_one({"_id": parent.id})
    assert raw["name"] == "p"
    # the other tenant's child was hidden by populate, not removed
    assert raw["childs"] == [child1.id, child2.id]


def test_reassigned_populated_path_is_stored_as_ids(make_model):
    ParentModel, ChildModel = _parent_with_children(make_model, {})

    parent = ParentModel.by_tenant("tenant1").find().populate("childs").first()
    parent["childs"] = parent["childs"][:1]
    parent.save()

    child1 = ChildModel.find_one({"tenantId": "tenant1"})
    assert ParentModel.collection.find_one({"_id": parent.id})["childs"] == [child1.id]


def test_populate_rejects_unknown_paths(make_model):
    TestModel = make_model({"name": str})
    with pytest.raises(ValueError):
        TestModel.find().populate("name")

    Orphan = make_model({"ghost": Ref("Nope")})
    Orphan.create({"ghost": 1})
    with pytest.raises(UnknownModelError):
        Orphan.find().populate("ghost").exec()


def test_guard_decisions(make_model):
    Same = make_model()
    Other = make_model(tenant={"tenant_id_key": "otherTenantId"})
    Plain = make_model(with_plugin=False)
    source = make_model().by_tenant("t1")

    assert shares_tenant_scope(source, Same)
    assert not shares_tenant_scope(source, Other)
    assert not shares_tenant_scope(source, Plain)
    assert not shares_tenant_scope(Same, Same)

    bound = resolve_populate_model(source, Same)
    assert bound.has_tenant_context
    assert bound.tenant_id == "t1"
    assert resolve_populate_model(source, Plain) is Plain
    assert resolve_populate_model(source, Other) is Other
