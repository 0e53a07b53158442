"""
Reference data seeding for branches and their equipment kits.

    python -m branchlearn.db.seed
"""
import asyncio
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.config import get_settings
from branchlearn.db.database import Database
from branchlearn.models.catalog import Branch, EquipmentKit

logger = logging.getLogger(__name__)

DEFAULT_BRANCHES: list[dict[str, Any]] = [
    {
        "name": "Mechanical Engineering",
        "description": "Machines, thermodynamics and manufacturing processes.",
        "location": "Block A",
        "image": "/images/branches/mechanical.jpg",
        "price": 45000,
        "equipment": [
            {"name": "Lathe Machine", "description": "Turning and facing practice.", "icon": "cog"},
            {"name": "CNC Mill", "description": "Programmed milling operations.", "icon": "drill"},
        ],
    },
    {
        "name": "Electrical Engineering",
        "description": "Circuits, machines and power systems.",
        "location": "Block B",
        "image": "/images/branches/electrical.jpg",
        "price": 42000,
        "equipment": [
            {"name": "Oscilloscope", "description": "Signal measurement.", "icon": "activity"},
            {"name": "Transformer Bench", "description": "Load and efficiency tests.", "icon": "zap"},
        ],
    },
    {
        "name": "Civil Engineering",
        "description": "Structures, surveying and construction materials.",
        "location": "Block C",
        "image": "/images/branches/civil.jpg",
        "price": 40000,
        "equipment": [
            {"name": "Total Station", "description": "Surveying practice.", "icon": "crosshair"},
        ],
    },
]


async def seed_catalog(db: AsyncSession, branches: list[dict[str, Any]] | None = None) -> int:
    """Insert branches and kits when the branch table is empty. Returns rows added."""
    count = (await db.execute(select(func.count()).select_from(Branch))).scalar_one()
    if count:
        logger.info("Catalog already seeded (%d branches)", count)
        return 0

    added = 0
    for entry in branches or DEFAULT_BRANCHES:
        fields = {k: v for k, v in entry.items() if k != "equipment"}
        branch = Branch(**fields)
        db.add(branch)
        await db.flush()
        for kit in entry.get("equipment", []):
            db.add(EquipmentKit(branch_id=branch.id, **kit))
        added += 1
    await db.commit()
    logger.info("Seeded %d branches", added)
    return added


async def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    database = Database(settings.database_url)
    await database.open()
    try:
        async with database.session() as db:
            await seed_catalog(db)
    finally:
        await database.close()


if __name__ == "__main__":
    asyncio.run(main())
