"""One-hop relationship expansion over the entity and relation stores.

Holds no state of its own: every call reads both stores afresh, so attached
parents/children are never cached. Expansion never goes past one hop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog

from stakeholder_registry.modules.stakeholders.entity_store import StakeholderStore
from stakeholder_registry.modules.stakeholders.identifiers import OpaqueId
from stakeholder_registry.modules.stakeholders.relation_store import RelationStore
from stakeholder_registry.modules.stakeholders.schemas import (
    ListOptions,
    StakeholderPage,
    StakeholderRecord,
)

logger = structlog.get_logger()


class StakeholderGraph:
    def __init__(self, stakeholders: StakeholderStore, relations: RelationStore) -> None:
        self.stakeholders = stakeholders
        self.relations = relations

    async def attach_parents(self, stakeholder: StakeholderRecord) -> list[StakeholderRecord]:
        parent_ids = await self.relations.get_parent_ids(stakeholder.stakeholder_uuid)
        return await self.stakeholders.list_by_uuids(parent_ids)

    async def attach_children(
        self,
        stakeholder: StakeholderRecord,
        options: ListOptions | None = None,
    ) -> list[StakeholderRecord]:
        """Children of ``stakeholder``, ordered by org name and paginated by ``options``.

        Each child's ``parents`` holds only ``stakeholder`` itself, not the
        child's full parent list.
        """
        child_ids = await self.relations.get_child_ids(stakeholder.stakeholder_uuid)
        children = await self.stakeholders.list_by_uuids(child_ids, options)
        parent = stakeholder.flat()
        return [child.model_copy(update={"parents": [parent]}) for child in children]

    async def expand(
        self,
        stakeholder: StakeholderRecord,
        options: ListOptions | None = None,
    ) -> StakeholderRecord:
        """Copy of ``stakeholder`` with its one-hop parents and children attached."""
        base = stakeholder.flat()
        parents, children = await asyncio.gather(
            self.attach_parents(base),
            self.attach_children(base, options),
        )
        return base.model_copy(update={"parents": parents, "children": children})

    async def expand_all(
        self,
        rows: Sequence[StakeholderRecord],
        options: ListOptions | None = None,
    ) -> list[StakeholderRecord]:
        # gather keeps input order; any failure fails the whole listing
        return list(await asyncio.gather(*(self.expand(row, options) for row in rows)))

    async def get_unlinked(self, identifier: Any, options: ListOptions) -> StakeholderPage:
        """Stakeholders with no direct relation to the target, in either direction."""
        target = await self.stakeholders.get_by_id(identifier)
        related = await self.relations.get_related_ids(OpaqueId(target.stakeholder_uuid))
        excluded = related | {target.stakeholder_uuid}
        logger.debug(
            "stakeholder_unlinked_lookup",
            stakeholder_uuid=target.stakeholder_uuid,
            related_count=len(related),
        )
        return await self.stakeholders.list_excluding(excluded, options)
