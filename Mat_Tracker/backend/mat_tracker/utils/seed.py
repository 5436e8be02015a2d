"""
Začetni podatki / Initial data.
Ob prvem zagonu ustvari skrbnika in katalog tipov predpražnikov.
Creates the admin profile and the mat type catalogue on first startup.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.models.mat_type import MatCategory, MatType
from mat_tracker.models.user import User, UserRole

log = logging.getLogger(__name__)

# (koda, ime, kategorija, širina, višina)
DEFAULT_MAT_TYPES = [
    ("MBW0", "Standard 85x75", MatCategory.STANDARD, 85, 75),
    ("MBW1", "Standard 85x150", MatCategory.STANDARD, 85, 150),
    ("MBW2", "Standard 115x200", MatCategory.STANDARD, 115, 200),
    ("MBW3", "Standard 150x250", MatCategory.STANDARD, 150, 250),
    ("MBW4", "Standard 150x300", MatCategory.STANDARD, 150, 300),
    ("ERM10R", "Ergo 86x142", MatCategory.ERGO, 86, 142),
    ("ERM11R", "Ergo 86x200", MatCategory.ERGO, 86, 200),
    ("DESIGN", "Design po meri", MatCategory.DESIGN, None, None),
]


async def seed_admin(session: AsyncSession, email: str = "admin@mat-tracker.local") -> None:
    """Ustvari skrbnika, če uporabnikov še ni / Create the admin profile if no users exist."""
    count = await session.scalar(select(func.count(User.id)))
    if count:
        log.info("%d existing user(s), admin seed skipped", count)
        return
    session.add(User(email=email, first_name="Admin", role=UserRole.ADMIN, is_active=True))
    await session.commit()
    log.info("Admin profile created: %s", email)


async def seed_mat_types(session: AsyncSession) -> None:
    existing = set((await session.execute(select(MatType.code))).scalars().all())
    added = 0
    for code, name, category, width, height in DEFAULT_MAT_TYPES:
        if code in existing:
            continue
        session.add(MatType(code=code, name=name, category=category, width_cm=width, height_cm=height))
        added += 1
    if added:
        await session.commit()
        log.info("Seeded %d mat types", added)
