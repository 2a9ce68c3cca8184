"""SQLAlchemy models package — import all models so Base.metadata is populated."""

from stakeholder_registry.models.enums import RelationType
from stakeholder_registry.models.stakeholder import Stakeholder, StakeholderRelation

__all__ = [
    "RelationType",
    "Stakeholder",
    "StakeholderRelation",
]
