import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./clinic_cms_test.db")

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_cms.core.security import create_access_token
from clinic_cms.db.models import Branch, Doctor, User
from clinic_cms.db.session import get_session, init_db
from clinic_cms.main import app
from clinic_cms.services.locks import DoctorLockRegistry
from clinic_cms.services.schedule_service import ScheduleService


@dataclass
class Seed:
    admin_id: UUID
    editor_id: UUID
    branch_north: UUID
    branch_south: UUID
    branch_empty: UUID
    doctor_sara: UUID
    doctor_reza: UUID


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions get their own connections.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'schedule.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(session_factory) -> Seed:
    seed = Seed(
        admin_id=uuid4(),
        editor_id=uuid4(),
        branch_north=uuid4(),
        branch_south=uuid4(),
        branch_empty=uuid4(),
        doctor_sara=uuid4(),
        doctor_reza=uuid4(),
    )
    async with session_factory() as session:
        session.add_all([
            User(id=seed.admin_id, role="admin", name="Admin"),
            User(id=seed.editor_id, role="receptionist", name="Front Desk"),
            Branch(id=seed.branch_north, key="north", name="North"),
            Branch(id=seed.branch_south, key="south", name="South"),
            Branch(id=seed.branch_empty, key="east", name="East"),
            Doctor(id=seed.doctor_sara, name="Dr. Sara", specialty="Cardiology"),
            Doctor(id=seed.doctor_reza, name="Dr. Reza", specialty="Dermatology"),
        ])
        await session.commit()
    return seed


@pytest_asyncio.fixture
async def admin(session, seed) -> User:
    return await session.get(User, seed.admin_id)


@pytest.fixture
def locks():
    return DoctorLockRegistry()


@pytest.fixture
def service(session, admin, locks) -> ScheduleService:
    return ScheduleService(session, actor=admin, locks=locks)


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _bearer(user_id: UUID) -> dict:
    token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(seed) -> dict:
    return _bearer(seed.admin_id)


@pytest.fixture
def editor_headers(seed) -> dict:
    return _bearer(seed.editor_id)
