"""Tests for the stakeholder entity store."""

import pytest

from stakeholder_registry.core.errors import AmbiguousIdentifierError, NotFoundError, ValidationError
from stakeholder_registry.modules.stakeholders.schemas import ListOptions
from stakeholder_registry.modules.stakeholders.service import StakeholderService

# ── Lookup ───────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_get_by_id_resolves_both_keys(service: StakeholderService, seed_graph):
    store = service.stakeholders
    by_int = await store.get_by_id(2)
    by_numeric_string = await store.get_by_id("2")
    by_uuid = await store.get_by_id("u2")
    assert by_int.org_name == "Beta"
    assert by_numeric_string == by_int
    assert by_uuid == by_int


@pytest.mark.anyio
async def test_get_by_id_not_found(service: StakeholderService, seed_graph):
    with pytest.raises(NotFoundError):
        await service.stakeholders.get_by_id(999)
    with pytest.raises(NotFoundError):
        await service.stakeholders.get_by_id("no-such-uuid")


@pytest.mark.anyio
async def test_find_returns_none(service: StakeholderService, seed_graph):
    assert await service.stakeholders.find("no-such-uuid") is None


@pytest.mark.anyio
async def test_get_by_id_ambiguous(service: StakeholderService):
    with pytest.raises(AmbiguousIdentifierError):
        await service.stakeholders.get_by_id(None)


@pytest.mark.anyio
async def test_integer_string_only_matches_numeric_id(service: StakeholderService):
    created = await service.create({"stakeholder_uuid": "5", "org_name": "First"})
    assert created.id == 1
    # "5" classifies as numeric id 5, never as the uuid "5"
    with pytest.raises(NotFoundError):
        await service.stakeholders.get_by_id("5")
    assert (await service.stakeholders.get_by_id(1)).stakeholder_uuid == "5"


OVERSIZED_ID = "99999999999999999999999"


@pytest.mark.anyio
@pytest.mark.parametrize("identifier", [OVERSIZED_ID, 2**31, -(2**31) - 1, 2**63])
async def test_out_of_range_id_is_not_found(service: StakeholderService, seed_graph, identifier):
    assert await service.stakeholders.find(identifier) is None
    with pytest.raises(NotFoundError):
        await service.stakeholders.get_by_id(identifier)


@pytest.mark.anyio
async def test_update_out_of_range_id_is_not_found(service: StakeholderService, seed_graph):
    with pytest.raises(NotFoundError):
        await service.stakeholders.update({"id": OVERSIZED_ID, "email": "x@test"})


@pytest.mark.anyio
async def test_unbindable_filter_value_is_a_validation_error(service: StakeholderService, seed_graph):
    with pytest.raises(ValidationError) as excinfo:
        await service.stakeholders.filter_page({"org_name": object()}, ListOptions(limit=5, offset=0))
    assert excinfo.value.to_response().error == "validation_error"
    assert "error" in excinfo.value.detail


# ── Listing ──────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_list_page_orders_by_org_name(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_page(ListOptions(limit=10, offset=0))
    assert page.count == 6
    assert [row.org_name for row in page.rows] == ["Acme", "Beta", "Cedar", "Delta", "Echo", "Foxtrot"]


@pytest.mark.anyio
async def test_list_page_count_ignores_pagination(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_page(ListOptions(limit=2, offset=1))
    assert page.count == 6
    assert [row.org_name for row in page.rows] == ["Beta", "Cedar"]


@pytest.mark.anyio
async def test_list_page_zero_limit(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_page(ListOptions(limit=0, offset=0))
    assert page.rows == []
    assert page.count == 6


@pytest.mark.anyio
async def test_list_page_offset_past_end(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_page(ListOptions(limit=5, offset=50))
    assert page.rows == []
    assert page.count == 6


@pytest.mark.anyio
async def test_rows_are_not_expanded(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_page(ListOptions(limit=10, offset=0))
    assert all(row.parents is None and row.children is None for row in page.rows)


@pytest.mark.anyio
async def test_list_roots(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_roots(ListOptions(limit=10, offset=0))
    assert [row.stakeholder_uuid for row in page.rows] == ["u1", "u4", "u6"]
    assert page.count == 3


@pytest.mark.anyio
async def test_list_by_uuids(service: StakeholderService, seed_graph):
    rows = await service.stakeholders.list_by_uuids({"u5", "u3", "u1"})
    assert [row.org_name for row in rows] == ["Acme", "Cedar", "Echo"]
    assert await service.stakeholders.list_by_uuids([]) == []


@pytest.mark.anyio
async def test_list_excluding(service: StakeholderService, seed_graph):
    page = await service.stakeholders.list_excluding({"u1", "u2"}, ListOptions(limit=10, offset=0))
    assert {row.stakeholder_uuid for row in page.rows} == {"u3", "u4", "u5", "u6"}
    assert page.count == 4


# ── Filtering ────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_filter_page_equality(service: StakeholderService, seed_graph):
    page = await service.stakeholders.filter_page({"type": "Organization"}, ListOptions(limit=2, offset=0))
    assert page.count == 5
    assert [row.org_name for row in page.rows] == ["Acme", "Beta"]


@pytest.mark.anyio
async def test_filter_page_all_fields_must_match(service: StakeholderService, seed_graph):
    page = await service.stakeholders.filter_page(
        {"type": "Organization", "org_name": "Echo"}, ListOptions(limit=10, offset=0)
    )
    assert page.rows == []
    assert page.count == 0


@pytest.mark.anyio
async def test_filter_page_none_matches_null(service: StakeholderService, seed_graph):
    page = await service.stakeholders.filter_page({"email": None}, ListOptions(limit=10, offset=0))
    assert {row.stakeholder_uuid for row in page.rows} == {"u3", "u4", "u5", "u6"}


@pytest.mark.anyio
async def test_filter_page_rejects_unknown_columns(service: StakeholderService, seed_graph):
    with pytest.raises(ValidationError, match="drop_table"):
        await service.stakeholders.filter_page({"drop_table": 1}, ListOptions(limit=10, offset=0))


@pytest.mark.anyio
async def test_filter_within(service: StakeholderService, seed_graph):
    page = await service.stakeholders.filter_within(
        {"u1", "u5"}, {"type": "Person"}, ListOptions(limit=10, offset=0)
    )
    assert [row.stakeholder_uuid for row in page.rows] == ["u5"]
    assert page.count == 1


# ── Writes ───────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_create_generates_id_and_uuid(service: StakeholderService):
    created = await service.stakeholders.create({"org_name": "Greenwood", "email": "gw@test"})
    assert created.id == 1
    assert len(created.stakeholder_uuid) == 36
    assert created.pwd_reset_required is False
    assert created.created_at is not None


@pytest.mark.anyio
async def test_create_ignores_supplied_id_and_derived_fields(service: StakeholderService):
    created = await service.stakeholders.create(
        {"id": 77, "org_name": "Greenwood", "parents": [], "children": []}
    )
    assert created.id == 1
    assert created.parents is None


@pytest.mark.anyio
async def test_create_rejects_unknown_field(service: StakeholderService):
    with pytest.raises(ValidationError, match="favourite_colour"):
        await service.stakeholders.create({"org_name": "X", "favourite_colour": "green"})


@pytest.mark.anyio
async def test_create_duplicate_uuid_rejected(service: StakeholderService, seed_graph):
    with pytest.raises(ValidationError):
        await service.stakeholders.create({"stakeholder_uuid": "u1", "org_name": "Clone"})


@pytest.mark.anyio
async def test_update_returns_post_update_row(service: StakeholderService, seed_graph):
    updated = await service.stakeholders.update({"id": 2, "email": "new@beta.test", "phone": "555"})
    assert updated.id == 2
    assert updated.email == "new@beta.test"
    assert updated.phone == "555"
    assert updated.org_name == "Beta"
    assert (await service.stakeholders.get_by_id("u2")).email == "new@beta.test"


@pytest.mark.anyio
async def test_update_accepts_numeric_string_id(service: StakeholderService, seed_graph):
    updated = await service.stakeholders.update({"id": "3", "website": "https://cedar.test"})
    assert updated.stakeholder_uuid == "u3"


@pytest.mark.anyio
async def test_update_missing_row(service: StakeholderService, seed_graph):
    with pytest.raises(NotFoundError):
        await service.stakeholders.update({"id": 404, "email": "x@test"})


@pytest.mark.anyio
@pytest.mark.parametrize("attributes", [{"email": "x@test"}, {"id": "u2", "email": "x@test"}])
async def test_update_requires_numeric_id(service: StakeholderService, seed_graph, attributes):
    with pytest.raises(ValidationError):
        await service.stakeholders.update(attributes)


@pytest.mark.anyio
async def test_update_rejects_unknown_field(service: StakeholderService, seed_graph):
    with pytest.raises(ValidationError):
        await service.stakeholders.update({"id": 1, "nickname": "A"})
