"""
Povezava z bazo / Database connection.
Podpira SQLite (dev) in PostgreSQL (prod) prek SQLAlchemy 2.0 async.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from mat_tracker.config import settings

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# Nastavitve motorja / Engine configuration
_engine_kwargs: dict = {
    "echo": False,
}

# PostgreSQL : connection pooling
if not _is_sqlite:
    _engine_kwargs.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    })

engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def generate_uuid() -> str:
    """UUID primarni ključ / UUID primary key (client-assigned)."""
    return str(uuid.uuid4())


async def get_db() -> AsyncSession:
    """FastAPI odvisnost za sejo / FastAPI dependency for DB session.

    Ena zahteva = ena transakcija / One request = one transaction.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Ustvari tabele ob zagonu / Create tables on startup."""
    # Uvoz registrira modele na Base.metadata / Import registers models on Base.metadata
    import mat_tracker.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
