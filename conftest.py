import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from wikift.core.config import settings
from wikift.crud.user import UserDirectory
from wikift.db.database import build_engine, build_session_factory, get_db, init_db, session_scope
from wikift.schemas.user import UserCreate

TEST_DATABASE_URL = settings.TEST_DATABASE_URL or "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def async_test_engine():
    """Create a test async engine with fresh tables for each test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        test_engine = build_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool
        )
    else:
        test_engine = build_engine(TEST_DATABASE_URL)

    await init_db(test_engine)
    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(async_test_engine):
    return build_session_factory(async_test_engine)


@pytest_asyncio.fixture
async def async_test_session(session_factory):
    """A session whose work is committed when the test finishes cleanly."""
    async with session_scope(session_factory) as session:
        yield session


@pytest.fixture
def user_directory(session_factory):
    return UserDirectory(session_factory)


@pytest_asyncio.fixture
async def seeded_users(user_directory):
    """Users alice, bob and carol (ids 1, 2, 3 on a fresh database)."""
    users = []
    for name in ("alice", "bob", "carol"):
        users.append(await user_directory.create_user(
            UserCreate(username=name, password="secret-pw", alias_name=name.title())
        ))
    return users


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app, with get_db bound to the test database."""
    from wikift.main import app

    async def override_get_db():
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}
