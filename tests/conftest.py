import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path

# Settings are read at import time, so point them at a throwaway database first.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="ledgerflow-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}")
os.environ.setdefault("IMPORTS_DIR", str(_TEST_DIR / "imports"))
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from app.main import app
from app.api.v1 import dependencies
from app.core.config import settings
from app.core.events import Services, build_services, start_services, stop_services
from app.db.session import async_session_factory, engine, initialize_database
from app.models.base import Base
from app.models.import_job import ImportJob
from app.models.project import Project
from app.models.user import User as UserModel
from app.schemas.user import User
from app.utils.datetime import utc_now

TEST_USER_ID = "test-user-id"
OTHER_USER_ID = "other-user-id"
TEST_PROJECT_ID = "test-project-id"
OTHER_PROJECT_ID = "other-project-id"

CSV_HEADER = "amount;currency;description\n"


@pytest_asyncio.fixture()
async def db():
    """Fresh schema with two users, each owning one project."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await initialize_database(create_tables=True)

    async with async_session_factory() as session:
        session.add_all([
            UserModel(id=TEST_USER_ID, email="test@example.com", hashed_password="x", full_name="Test User"),
            UserModel(id=OTHER_USER_ID, email="other@example.com", hashed_password="x", full_name="Other User"),
        ])
        await session.flush()
        session.add_all([
            Project(id=TEST_PROJECT_ID, name="Household", user_id=TEST_USER_ID),
            Project(id=OTHER_PROJECT_ID, name="Someone else's", user_id=OTHER_USER_ID),
        ])
        await session.commit()

    yield async_session_factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def imports_dir(tmp_path) -> Path:
    path = tmp_path / "imports"
    path.mkdir()
    return path


@pytest_asyncio.fixture()
async def services(db, imports_dir) -> AsyncGenerator[Services, None]:
    config = settings.model_copy(update={"IMPORTS_DIR": str(imports_dir)})
    services = build_services(db, config)
    await start_services(services)
    app.state.services = services
    yield services
    await stop_services(services)
    del app.state.services


@pytest.fixture
def override_auth():
    def fake_user():
        now = utc_now()
        return User(
            id=TEST_USER_ID,
            email="test@example.com",
            is_active=True,
            role="user",
            created_at=now,
            updated_at=now,
        )
    app.dependency_overrides[dependencies.get_current_user] = fake_user
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(services) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://testserver", transport=transport) as client:
        yield client


@pytest.fixture
def job_count(db):
    async def _count() -> int:
        async with db() as session:
            result = await session.execute(select(func.count(ImportJob.id)))
            return result.scalar_one()
    return _count


@pytest.fixture
def write_csv(tmp_path):
    """Write a semicolon file with the standard header followed by ``body``."""
    def _write(body: str, name: str = "transactions.csv") -> Path:
        path = tmp_path / name
        path.write_text(CSV_HEADER + body, encoding="utf-8")
        return path
    return _write
