"""Shared test fixtures for the stakeholder registry test suite."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy import func, select

from stakeholder_registry.core.config import Settings
from stakeholder_registry.core.database import Database
from stakeholder_registry.models.stakeholder import StakeholderRelation
from stakeholder_registry.modules.stakeholders.schemas import StakeholderRecord
from stakeholder_registry.modules.stakeholders.service import StakeholderService


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    """Fresh file-backed SQLite database per test; separate connections per session."""
    config = Settings(_env_file=None, DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'stakeholders.db'}")
    db = Database.from_settings(config)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture
def service(database: Database) -> StakeholderService:
    return StakeholderService(database, reject_reciprocal_links=False)


# ── Sample data fixtures ──────────────────────────────────────────────────
#
#   Acme (u1) ──► Beta (u2) ──► Echo (u5)
#        └──────► Cedar (u3)
#   Delta (u4) ─► Beta (u2)
#   Foxtrot (u6)  (no relations)

SAMPLE_STAKEHOLDERS = [
    {"stakeholder_uuid": "u1", "org_name": "Acme", "type": "Organization", "email": "info@acme.test"},
    {"stakeholder_uuid": "u2", "org_name": "Beta", "type": "Organization", "email": "hello@beta.test"},
    {"stakeholder_uuid": "u3", "org_name": "Cedar", "type": "Organization"},
    {"stakeholder_uuid": "u4", "org_name": "Delta", "type": "Organization"},
    {
        "stakeholder_uuid": "u5",
        "org_name": "Echo",
        "type": "Person",
        "first_name": "Eve",
        "last_name": "Echo",
    },
    {"stakeholder_uuid": "u6", "org_name": "Foxtrot", "type": "Organization"},
]

SAMPLE_EDGES = [("u1", "u2"), ("u1", "u3"), ("u4", "u2"), ("u2", "u5")]

ALL_UUIDS = {row["stakeholder_uuid"] for row in SAMPLE_STAKEHOLDERS}


@pytest.fixture
async def seed_graph(service: StakeholderService) -> dict[str, StakeholderRecord]:
    """Seed the sample stakeholders and edges; returns records keyed by uuid."""
    records = {}
    for attributes in SAMPLE_STAKEHOLDERS:
        record = await service.create(attributes)
        records[record.stakeholder_uuid] = record
    for parent_id, child_id in SAMPLE_EDGES:
        await service.relations.link(parent_id, child_id)
    return records


async def count_edges(database: Database) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(StakeholderRelation))
        return result.scalar_one()
