"""Skupne testne priprave / Shared test fixtures."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import mat_tracker.models  # noqa: F401
from mat_tracker.database import Base
from mat_tracker.models.mat_type import MatType
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.user import User, UserRole


@pytest.fixture
async def engine(tmp_path):
    # Datoteka namesto :memory:, da si več sej deli isto bazo
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make(role=UserRole.PRODAJALEC, prefix=None, email=None, first_name="Test", last_name="User"):
        user = User(
            email=email or f"{(prefix or role.value).lower()}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
            code_prefix=prefix,
            is_active=True,
        )
        db.add(user)
        await db.flush()
        return user

    return _make


@pytest.fixture
async def seller(make_user):
    return await make_user(UserRole.PRODAJALEC, prefix="GEO", first_name="Jure", last_name="Novak")


@pytest.fixture
async def inventory(make_user):
    return await make_user(UserRole.INVENTAR, email="inventar@example.com", first_name="Ana", last_name="Kos")


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, email="admin@example.com", first_name="Admin", last_name="")


@pytest.fixture
async def mat_type(db):
    mat = MatType(code="MBW1", name="Standard 85x150", width_cm=85, height_cm=150)
    db.add(mat)
    await db.flush()
    return mat


@pytest.fixture
def make_code(db):
    async def _make(code, owner=None, status=QRStatus.AVAILABLE):
        qr = QRCode(code=code, owner_id=owner.id if owner else None, status=status)
        db.add(qr)
        await db.flush()
        return qr

    return _make
