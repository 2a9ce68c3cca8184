"""Stakeholder registry: entities, directed relations and one-hop graph queries."""

from stakeholder_registry.core.database import Database, TransactionScope
from stakeholder_registry.core.errors import (
    AmbiguousIdentifierError,
    NotFoundError,
    StakeholderError,
    ValidationError,
)
from stakeholder_registry.modules.stakeholders.schemas import (
    LinkUpdate,
    ListOptions,
    RelationRecord,
    StakeholderPage,
    StakeholderRecord,
)
from stakeholder_registry.modules.stakeholders.service import StakeholderService

__all__ = [
    "AmbiguousIdentifierError",
    "Database",
    "LinkUpdate",
    "ListOptions",
    "NotFoundError",
    "RelationRecord",
    "StakeholderError",
    "StakeholderPage",
    "StakeholderRecord",
    "StakeholderService",
    "TransactionScope",
    "ValidationError",
]
