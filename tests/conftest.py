import os
import tempfile
import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings

# Override settings for tests (before the app and the DB engine are imported)
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"rank_monitor_test_{os.getpid()}.db")
settings.database_url = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
settings.fernet_key = "KxJCocbnA3KD20pkgSN3uUZybasKP1X9lAJDX4oLxoQ="  # test-only Fernet key
settings.serpapi_api_key = "test-serpapi-key"
settings.google_client_id = "test-client-id"
settings.google_client_secret = "test-client-secret"
settings.rank_check_delay_ms = 0
settings.app_env = "test"

from app.db.base import Base  # noqa: E402
from app.db.postgres import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.models.keyword_ranking import KeywordRanking  # noqa: E402
from app.models.project import Project  # noqa: E402

# NullPool: each session gets its own connection to the temp SQLite file
test_engine = create_async_engine(settings.database_url, echo=False, poolclass=NullPool)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def project(db: AsyncSession) -> Project:
    """A project owned by a random user, no keywords yet."""
    p = Project(
        user_id=uuid.uuid4(),
        name="Example Store",
        domain="example.com",
        market_segment="retail",
        competitors=["rival.com", "other.com"],
    )
    db.add(p)
    await db.commit()
    return p


@pytest.fixture
def add_ranking(db: AsyncSession):
    """Factory: add a tracked keyword with an optional current position."""

    async def _add(project: Project, keyword: str, current_position: int | None = None, **kwargs) -> KeywordRanking:
        kr = KeywordRanking(project_id=project.id, keyword=keyword, current_position=current_position, **kwargs)
        db.add(kr)
        await db.commit()
        return kr

    return _add
