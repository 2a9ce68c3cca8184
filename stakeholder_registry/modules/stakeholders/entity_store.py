"""Stakeholder entity store — row access to the ``stakeholder`` table."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Result, func, insert, select, update

from stakeholder_registry.core.database import SessionSource
from stakeholder_registry.core.errors import NotFoundError, ValidationError, rejected_by_store
from stakeholder_registry.models.stakeholder import Stakeholder, StakeholderRelation
from stakeholder_registry.modules.stakeholders.identifiers import NumericId, classify_identifier
from stakeholder_registry.modules.stakeholders.schemas import (
    ListOptions,
    StakeholderPage,
    StakeholderRecord,
)

logger = structlog.get_logger()

_table = Stakeholder.__table__

COLUMNS = frozenset(_table.c.keys())

# Computed on read; silently dropped from write payloads.
_DERIVED_FIELDS = frozenset({"parents", "children"})

_ORDERING = (Stakeholder.org_name.asc(), Stakeholder.id.asc())


def check_columns(fields: Mapping[str, Any], *, purpose: str) -> dict[str, Any]:
    """Return ``fields`` as a dict, rejecting keys that are not stakeholder columns."""
    unknown = sorted(set(fields) - COLUMNS)
    if unknown:
        raise ValidationError(
            f"Unknown stakeholder {purpose} field(s): {', '.join(unknown)}",
            detail={"unknown_fields": unknown},
        )
    return dict(fields)


def criteria_clauses(criteria: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    """Equality predicates for a filter mapping. ``None`` values match NULL."""
    fields = check_columns(criteria, purpose="filter")
    return [_table.c[name] == value for name, value in fields.items()]


def _write_values(attributes: Mapping[str, Any], purpose: str) -> dict[str, Any]:
    payload = {k: v for k, v in attributes.items() if k not in _DERIVED_FIELDS}
    return check_columns(payload, purpose=purpose)


def _records(result: Result[Any]) -> list[StakeholderRecord]:
    return [StakeholderRecord.model_validate(dict(row)) for row in result.mappings()]


def _read_errors(**context: Any):
    return rejected_by_store(
        "Stakeholder query rejected by the database",
        event="stakeholder_read_rejected",
        **context,
    )


class StakeholderStore:
    def __init__(self, db: SessionSource) -> None:
        self.db = db

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find(self, identifier: Any) -> StakeholderRecord | None:
        ident = classify_identifier(identifier)
        with _read_errors(operation="find", identifier=str(identifier)):
            async with self.db.session() as session:
                result = await session.execute(select(_table).where(ident.clause()))
                row = result.mappings().one_or_none()
        return StakeholderRecord.model_validate(dict(row)) if row is not None else None

    async def get_by_id(self, identifier: Any) -> StakeholderRecord:
        record = await self.find(identifier)
        if record is None:
            raise NotFoundError(
                f"Stakeholder {identifier!r} not found",
                detail={"identifier": str(identifier)},
            )
        return record

    async def list_page(self, options: ListOptions) -> StakeholderPage:
        return await self._page([], options)

    async def filter_page(self, criteria: Mapping[str, Any], options: ListOptions) -> StakeholderPage:
        return await self._page(criteria_clauses(criteria), options)

    async def list_roots(self, options: ListOptions) -> StakeholderPage:
        """Stakeholders that are nobody's child."""
        has_parent = (
            select(StakeholderRelation.id)
            .where(StakeholderRelation.child_id == Stakeholder.stakeholder_uuid)
            .exists()
        )
        return await self._page([~has_parent], options)

    async def list_excluding(self, uuids: Collection[str], options: ListOptions) -> StakeholderPage:
        clauses = [Stakeholder.stakeholder_uuid.not_in(list(uuids))] if uuids else []
        return await self._page(clauses, options)

    async def filter_within(
        self,
        uuids: Collection[str],
        criteria: Mapping[str, Any],
        options: ListOptions,
    ) -> StakeholderPage:
        clauses = criteria_clauses(criteria)
        clauses.append(Stakeholder.stakeholder_uuid.in_(list(uuids)))
        return await self._page(clauses, options)

    async def list_by_uuids(
        self,
        uuids: Collection[str],
        options: ListOptions | None = None,
    ) -> list[StakeholderRecord]:
        if not uuids:
            return []
        stmt = (
            select(_table)
            .where(Stakeholder.stakeholder_uuid.in_(list(uuids)))
            .order_by(*_ORDERING)
        )
        if options is not None:
            stmt = stmt.offset(options.offset).limit(options.limit)
        with _read_errors(operation="list_by_uuids"):
            async with self.db.session() as session:
                result = await session.execute(stmt)
                return _records(result)

    async def _page(self, clauses: list[ColumnElement[bool]], options: ListOptions) -> StakeholderPage:
        # Count ignores limit/offset
        count_stmt = select(func.count()).select_from(Stakeholder).where(*clauses)
        stmt = (
            select(_table)
            .where(*clauses)
            .order_by(*_ORDERING)
            .offset(options.offset)
            .limit(options.limit)
        )
        with _read_errors(operation="page"):
            async with self.db.session() as session:
                total = (await session.execute(count_stmt)).scalar_one()
                result = await session.execute(stmt)
                rows = _records(result)
        return StakeholderPage(rows=rows, count=total)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, attributes: Mapping[str, Any]) -> StakeholderRecord:
        values = _write_values(attributes, "create")
        values.pop("id", None)  # always store-generated
        stmt = insert(_table).values(**values).returning(*_table.c)
        with rejected_by_store(
            "Stakeholder insert rejected by the database",
            event="stakeholder_write_rejected",
            operation="create",
        ):
            async with self.db.begin() as session:
                row = (await session.execute(stmt)).mappings().one()

        record = StakeholderRecord.model_validate(dict(row))
        logger.info(
            "stakeholder_created",
            stakeholder_id=record.id,
            stakeholder_uuid=record.stakeholder_uuid,
        )
        return record

    async def update(self, attributes: Mapping[str, Any]) -> StakeholderRecord:
        values = _write_values(attributes, "update")
        if values.get("id") is None:
            raise ValidationError("Stakeholder update requires an id")
        ident = classify_identifier(values["id"])
        if not isinstance(ident, NumericId):
            raise ValidationError(
                "Stakeholder update requires a numeric id",
                detail={"id": str(values["id"])},
            )
        if not ident.in_range:
            raise NotFoundError(f"Stakeholder {ident.value} not found", detail={"id": ident.value})
        values["id"] = ident.value

        stmt = (
            update(_table)
            .where(ident.clause())
            .values(**values)
            .returning(*_table.c)
        )
        with rejected_by_store(
            f"Stakeholder {ident.value} update rejected by the database",
            event="stakeholder_write_rejected",
            operation="update",
            stakeholder_id=ident.value,
        ):
            async with self.db.begin() as session:
                row = (await session.execute(stmt)).mappings().one_or_none()

        if row is None:
            raise NotFoundError(f"Stakeholder {ident.value} not found", detail={"id": ident.value})

        logger.info("stakeholder_updated", stakeholder_id=ident.value, fields=sorted(values))
        return StakeholderRecord.model_validate(dict(row))
