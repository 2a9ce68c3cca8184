"""Relation store — directed parent→child edges between stakeholder uuids."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stakeholder_registry.core.database import SessionSource
from stakeholder_registry.core.errors import ValidationError, rejected_by_store
from stakeholder_registry.models.stakeholder import Stakeholder, StakeholderRelation
from stakeholder_registry.modules.stakeholders.identifiers import classify_identifier
from stakeholder_registry.modules.stakeholders.schemas import RelationRecord

logger = structlog.get_logger()

_edges = StakeholderRelation.__table__


def _read_errors(**context: Any):
    return rejected_by_store(
        "Stakeholder relation query rejected by the database",
        event="stakeholder_relation_read_rejected",
        **context,
    )


class RelationStore:
    def __init__(self, db: SessionSource, *, reject_reciprocal: bool = False) -> None:
        self.db = db
        self.reject_reciprocal = reject_reciprocal

    async def get_parent_ids(self, stakeholder_uuid: str) -> list[str]:
        stmt = (
            select(StakeholderRelation.parent_id)
            .where(StakeholderRelation.child_id == stakeholder_uuid)
            .order_by(StakeholderRelation.id)
        )
        with _read_errors(stakeholder_uuid=stakeholder_uuid):
            async with self.db.session() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())

    async def get_child_ids(self, stakeholder_uuid: str) -> list[str]:
        stmt = (
            select(StakeholderRelation.child_id)
            .where(StakeholderRelation.parent_id == stakeholder_uuid)
            .order_by(StakeholderRelation.id)
        )
        with _read_errors(stakeholder_uuid=stakeholder_uuid):
            async with self.db.session() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())

    async def get_related_ids(self, identifier: Any) -> set[str]:
        """Uuids of every stakeholder directly linked to the target, either direction.

        The target is resolved by id or uuid inside the same query. Its own
        uuid is never part of the result; an unknown target yields an empty set.
        """
        ident = classify_identifier(identifier)
        stmt = (
            select(
                Stakeholder.stakeholder_uuid,
                StakeholderRelation.parent_id,
                StakeholderRelation.child_id,
            )
            .join(
                StakeholderRelation,
                or_(
                    Stakeholder.stakeholder_uuid == StakeholderRelation.child_id,
                    Stakeholder.stakeholder_uuid == StakeholderRelation.parent_id,
                ),
            )
            .where(ident.clause())
        )
        with _read_errors(identifier=str(identifier)):
            async with self.db.session() as session:
                rows = (await session.execute(stmt)).all()

        related: set[str] = set()
        for own_uuid, parent_id, child_id in rows:
            related.update((parent_id, child_id))
            related.discard(own_uuid)
        return related

    async def link(self, parent_uuid: str, child_uuid: str) -> RelationRecord:
        if parent_uuid == child_uuid:
            raise ValidationError(
                "A stakeholder cannot be linked to itself",
                detail={"stakeholder_uuid": parent_uuid},
            )

        stmt = insert(_edges).values(parent_id=parent_uuid, child_id=child_uuid).returning(*_edges.c)
        with rejected_by_store(
            "Stakeholder relation rejected by the database",
            event="stakeholder_link_rejected",
            parent_id=parent_uuid,
            child_id=child_uuid,
        ):
            async with self.db.begin() as session:
                if self.reject_reciprocal:
                    await self._check_reciprocal(session, parent_uuid, child_uuid)
                row = (await session.execute(stmt)).mappings().one()

        logger.info("stakeholder_link_created", parent_id=parent_uuid, child_id=child_uuid)
        return RelationRecord.model_validate(dict(row))

    async def unlink(self, parent_uuid: str, child_uuid: str) -> RelationRecord | None:
        """Delete the edge; returns the removed row, or None when nothing matched."""
        stmt = (
            delete(_edges)
            .where(_edges.c.parent_id == parent_uuid, _edges.c.child_id == child_uuid)
            .returning(*_edges.c)
        )
        with rejected_by_store(
            "Stakeholder relation delete rejected by the database",
            event="stakeholder_unlink_rejected",
            parent_id=parent_uuid,
            child_id=child_uuid,
        ):
            async with self.db.begin() as session:
                rows = (await session.execute(stmt)).mappings().all()

        if not rows:
            return None
        logger.info("stakeholder_link_removed", parent_id=parent_uuid, child_id=child_uuid)
        return RelationRecord.model_validate(dict(rows[0]))

    async def _check_reciprocal(self, session: AsyncSession, parent_uuid: str, child_uuid: str) -> None:
        stmt = select(StakeholderRelation.id).where(
            StakeholderRelation.parent_id == child_uuid,
            StakeholderRelation.child_id == parent_uuid,
        )
        if (await session.execute(stmt)).first() is not None:
            raise ValidationError(
                "Reverse relation already exists; two-node cycles are not allowed",
                detail={"parent_id": parent_uuid, "child_id": child_uuid},
            )
