"""Stakeholder service — listings with one-hop expansion, entity and link mutations."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import pydantic
import structlog

from stakeholder_registry.core.config import settings
from stakeholder_registry.core.database import SessionSource
from stakeholder_registry.core.errors import NotFoundError, ValidationError
from stakeholder_registry.models.enums import RelationType
from stakeholder_registry.modules.stakeholders.entity_store import StakeholderStore, check_columns
from stakeholder_registry.modules.stakeholders.graph import StakeholderGraph
from stakeholder_registry.modules.stakeholders.relation_store import RelationStore
from stakeholder_registry.modules.stakeholders.schemas import (
    LinkUpdate,
    ListOptions,
    RelationRecord,
    StakeholderPage,
    StakeholderRecord,
)

logger = structlog.get_logger()


class StakeholderService:
    def __init__(self, db: SessionSource, *, reject_reciprocal_links: bool | None = None) -> None:
        if reject_reciprocal_links is None:
            reject_reciprocal_links = settings.REJECT_RECIPROCAL_LINKS
        self.db = db
        self.reject_reciprocal_links = reject_reciprocal_links
        self.stakeholders = StakeholderStore(db)
        self.relations = RelationStore(db, reject_reciprocal=reject_reciprocal_links)
        self.graph = StakeholderGraph(self.stakeholders, self.relations)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StakeholderService]:
        """Service whose calls share one transaction (e.g. create-then-link).

        Commits when the block exits cleanly; any exception rolls back every
        write made through the yielded service.
        """
        async with self.db.transaction() as scope:
            logger.debug("stakeholder_transaction_opened")
            yield StakeholderService(scope, reject_reciprocal_links=self.reject_reciprocal_links)

    # ── Listings ──────────────────────────────────────────────────────────

    async def list_all(self, options: ListOptions) -> StakeholderPage:
        page = await self.stakeholders.list_page(options)
        return await self._expand_page(page, options)

    async def list_roots(self, options: ListOptions) -> StakeholderPage:
        """Top-level stakeholders (no parent), each with one-hop expansion."""
        page = await self.stakeholders.list_roots(options)
        return await self._expand_page(page, options)

    async def get_one(self, identifier: Any, options: ListOptions | None = None) -> StakeholderPage:
        stakeholder = await self.stakeholders.get_by_id(identifier)
        expanded = await self.graph.expand(stakeholder, options)
        return StakeholderPage(rows=[expanded], count=1)

    async def list_by_filter(self, criteria: Mapping[str, Any], options: ListOptions) -> StakeholderPage:
        page = await self.stakeholders.filter_page(criteria, options)
        return await self._expand_page(page, options)

    async def list_related_filtered(
        self,
        identifier: Any,
        criteria: Mapping[str, Any],
        options: ListOptions,
    ) -> StakeholderPage:
        """Stakeholders directly related to ``identifier`` that match ``criteria``.

        Rows come back flat: unlike the other listings, no parents/children
        are attached.
        """
        check_columns(criteria, purpose="filter")
        related = await self.relations.get_related_ids(identifier)
        return await self.stakeholders.filter_within(related, criteria, options)

    async def get_unlinked(self, identifier: Any, options: ListOptions) -> StakeholderPage:
        return await self.graph.get_unlinked(identifier, options)

    async def _expand_page(self, page: StakeholderPage, options: ListOptions) -> StakeholderPage:
        rows = await self.graph.expand_all(page.rows, options)
        return StakeholderPage(rows=rows, count=page.count)

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create(self, attributes: Mapping[str, Any]) -> StakeholderRecord:
        return await self.stakeholders.create(attributes)

    async def update(self, attributes: Mapping[str, Any]) -> StakeholderRecord:
        return await self.stakeholders.update(attributes)

    async def update_link(self, subject: Any, change: LinkUpdate | Mapping[str, Any]) -> RelationRecord:
        """Link or unlink ``subject`` and ``change.other_stakeholder``.

        ``relation_type`` is the role the subject plays: ``parents`` makes the
        other stakeholder the parent, ``children`` makes it the child.
        """
        if not isinstance(change, LinkUpdate):
            try:
                change = LinkUpdate.model_validate(change)
            except pydantic.ValidationError as exc:
                raise ValidationError(
                    "Invalid link update",
                    detail=exc.errors(include_url=False, include_context=False),
                ) from exc

        subject_uuid = (await self.stakeholders.get_by_id(subject)).stakeholder_uuid
        other_uuid = change.other_stakeholder.stakeholder_uuid
        if change.relation_type is RelationType.PARENTS:
            parent_uuid, child_uuid = other_uuid, subject_uuid
        else:
            parent_uuid, child_uuid = subject_uuid, other_uuid

        if change.linked:
            return await self.relations.link(parent_uuid, child_uuid)

        removed = await self.relations.unlink(parent_uuid, child_uuid)
        if removed is None:
            raise NotFoundError(
                "Stakeholder relation not found",
                detail={"parent_id": parent_uuid, "child_id": child_uuid},
            )
        return removed
