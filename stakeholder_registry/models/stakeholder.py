"""Stakeholder and stakeholder relation tables."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stakeholder_registry.core.database import Base


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Stakeholder(Base):
    __tablename__ = "stakeholder"
    __table_args__ = (
        Index("ix_stakeholder_org_name", "org_name"),
        Index("ix_stakeholder_email", "email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stakeholder_uuid: Mapped[str] = mapped_column(
        String(36), nullable=False, unique=True, default=_new_uuid
    )
    type: Mapped[str | None] = mapped_column(String(50))
    org_name: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(50))
    website: Mapped[str | None] = mapped_column(String(512))
    logo_url: Mapped[str | None] = mapped_column(String(512))
    map: Mapped[str | None] = mapped_column(Text)
    pwd_reset_required: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    offering_pay_to_plant: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    tree_validation_contract_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Stakeholder(id={self.id}, uuid={self.stakeholder_uuid!r}, org_name={self.org_name!r})>"


class StakeholderRelation(Base):
    """Directed edge: ``parent_id`` is a direct parent of ``child_id`` (both uuids)."""

    __tablename__ = "stakeholder_relations"
    __table_args__ = (
        UniqueConstraint("parent_id", "child_id", name="uq_stakeholder_relations_parent_child"),
        Index("ix_stakeholder_relations_child_id", "child_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("stakeholder.stakeholder_uuid", ondelete="CASCADE"),
        nullable=False,
    )
    child_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("stakeholder.stakeholder_uuid", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<StakeholderRelation(parent_id={self.parent_id!r}, child_id={self.child_id!r})>"
