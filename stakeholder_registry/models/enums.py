"""Enums shared by the stakeholder models and request schemas."""

import enum


class RelationType(str, enum.Enum):
    """Role the subject of a link update plays towards the other stakeholder."""

    PARENTS = "parents"
    CHILDREN = "children"
