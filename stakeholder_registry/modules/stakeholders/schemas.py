"""Stakeholder Pydantic schemas."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

from stakeholder_registry.models.enums import RelationType


class ListOptions(BaseModel):
    """Pagination supplied by the caller; never clamped or defaulted here."""

    model_config = ConfigDict(frozen=True)

    limit: NonNegativeInt
    offset: NonNegativeInt


class StakeholderRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    stakeholder_uuid: str
    type: str | None = None
    org_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    logo_url: str | None = None
    map: str | None = None
    pwd_reset_required: bool = False
    offering_pay_to_plant: bool = False
    tree_validation_contract_id: str | None = None
    created_at: datetime | None = None

    # One-hop expansion, computed on read. None means "not expanded".
    parents: list[StakeholderRecord] | None = None
    children: list[StakeholderRecord] | None = None

    def flat(self) -> StakeholderRecord:
        """Copy without any attached relations."""
        return self.model_copy(update={"parents": None, "children": None})


class StakeholderPage(BaseModel):
    rows: list[StakeholderRecord]
    count: int


class RelationRecord(BaseModel):
    id: int
    parent_id: str
    child_id: str
    created_at: datetime | None = None


class StakeholderRef(BaseModel):
    """The other end of a link update; only the uuid is used."""

    model_config = ConfigDict(extra="ignore")

    stakeholder_uuid: str


class LinkUpdate(BaseModel):
    # Also accepts the camelCase / legacy keys sent by existing controllers
    relation_type: RelationType = Field(
        validation_alias=AliasChoices("relation_type", "relationType", "type")
    )
    linked: bool
    other_stakeholder: StakeholderRef = Field(
        validation_alias=AliasChoices("other_stakeholder", "otherStakeholder", "data")
    )

    @field_validator("other_stakeholder", mode="before")
    @classmethod
    def _coerce_record(cls, value: Any) -> Any:
        if isinstance(value, StakeholderRecord):
            return {"stakeholder_uuid": value.stakeholder_uuid}
        if isinstance(value, Mapping):
            return dict(value)
        return value
