"""
Shared fixtures: an in-memory database per test plus two organizations
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ledgerbook.core.database import Base, get_db
from ledgerbook.models import Organization
from tests.factories import make_client, token_for


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def org_id(async_session):
    organization = Organization(name="Maple Consulting", currency="CAD")
    async_session.add(organization)
    await async_session.commit()
    return organization.id


@pytest_asyncio.fixture
async def other_org_id(async_session):
    organization = Organization(name="Harbour Supplies", currency="USD")
    async_session.add(organization)
    await async_session.commit()
    return organization.id


@pytest_asyncio.fixture
async def client_id(async_session, org_id):
    return await make_client(async_session, org_id)


@pytest.fixture
def auth_headers(org_id):
    return {"Authorization": f"Bearer {token_for(org_id)}"}


@pytest_asyncio.fixture
async def api(async_session):
    from ledgerbook.main import app

    async def override_get_db():
        yield async_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
