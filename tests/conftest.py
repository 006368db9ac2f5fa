"""
Pytest fixtures for EduScope tests.

Every test gets its own file-backed SQLite database (in-memory databases are
per-connection, and the workflow opens a connection per operation).
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator, Callable

# Settings are read at import time; point them at a throwaway database
# and disable rate limiting before anything from eduscope is imported.
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp.name}"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from eduscope.config import get_settings

get_settings.cache_clear()

from eduscope.database import create_engine_for, create_session_maker, get_session_maker
from eduscope.kernel.audit import AuditSink
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.identity.jwt import create_access_token
from eduscope.kernel.identity.password import hash_password
from eduscope.kernel.models import Base, Degree, ResearchPaper, User, UserRole
from eduscope.kernel.models.research_paper import AcademicField, ContentStatus
from eduscope.kernel.models.user import Faculty
from eduscope.orchestration import ModerationWorkflow

TEST_PASSWORD = "TestPass123"
# bcrypt is slow on purpose; hash once for every fixture user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine on a fresh SQLite file."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'eduscope.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting data directly."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def audit_sink(session_maker) -> AuditSink:
    return AuditSink(session_maker)


@pytest.fixture
def workflow(session_maker, audit_sink) -> ModerationWorkflow:
    return ModerationWorkflow(session_maker, audit_sink)


@pytest.fixture
def make_user(session_maker) -> Callable:
    """Factory creating committed users."""

    async def _make(role: UserRole = UserRole.STUDENT, **fields) -> User:
        fields.setdefault("name", f"Test {role.value.title()}")
        fields.setdefault("email", f"{role.value}-{uuid.uuid4().hex[:8]}@eduscope.ac.lk")
        user = User(
            id=uuid.uuid4(),
            password_hash=TEST_PASSWORD_HASH,
            role=role.value,
            **fields,
        )
        async with session_maker() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def degree(session_maker) -> Degree:
    """Create the degree the student is enrolled in."""
    degree = Degree(
        id=uuid.uuid4(),
        degree_name="BSc (Hons) Computer Science",
        faculty=Faculty.COMPUTING.value,
        affiliated_university="University of Plymouth",
        duration=3,
        price=1250000.0,
    )
    async with session_maker() as session:
        session.add(degree)
        await session.commit()
        await session.refresh(degree)
    return degree


@pytest_asyncio.fixture
async def other_degree(session_maker) -> Degree:
    """Create a second, active degree to move to."""
    degree = Degree(
        id=uuid.uuid4(),
        degree_name="BSc (Hons) Software Engineering",
        faculty=Faculty.COMPUTING.value,
        affiliated_university="University of Plymouth",
        duration=3,
        price=1300000.0,
    )
    async with session_maker() as session:
        session.add(degree)
        await session.commit()
        await session.refresh(degree)
    return degree


@pytest_asyncio.fixture
async def student(make_user, degree) -> User:
    return await make_user(
        UserRole.STUDENT,
        name="Nimal Perera",
        email="nimal@eduscope.ac.lk",
        student_id="CB011111",
        faculty=Faculty.COMPUTING.value,
        year=2,
        degree_id=degree.id,
    )


@pytest_asyncio.fixture
async def other_student(make_user) -> User:
    return await make_user(
        UserRole.STUDENT,
        name="Kamala Silva",
        email="kamala@eduscope.ac.lk",
        student_id="CB022222",
        faculty=Faculty.BUSINESS.value,
        year=1,
    )


@pytest_asyncio.fixture
async def moderator(make_user) -> User:
    return await make_user(UserRole.MODERATOR, email="moderator@eduscope.ac.lk")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, email="admin@eduscope.ac.lk")


@pytest_asyncio.fixture
async def superadmin(make_user) -> User:
    return await make_user(UserRole.SUPERADMIN, email="root@eduscope.ac.lk")


@pytest_asyncio.fixture
async def paper(session_maker, student: User) -> ResearchPaper:
    """Create an approved paper uploaded by the student."""
    paper = ResearchPaper(
        id=uuid.uuid4(),
        title="Edge Caching for Campus Networks",
        authors=["Nimal Perera"],
        abstract="We measure cache hit rates across a university network.",
        field=AcademicField.COMPUTING.value,
        faculty=Faculty.COMPUTING.value,
        year=2024,
        file_id="blob-7f3a",
        file_name="edge-caching.pdf",
        file_size=48213,
        mime_type="application/pdf",
        uploaded_by=student.id,
        tags=["networks"],
        keywords=["caching"],
        status=ContentStatus.APPROVED.value,
    )
    async with session_maker() as session:
        session.add(paper)
        await session.commit()
        await session.refresh(paper)
    return paper


@pytest.fixture
def student_actor(student) -> Actor:
    return Actor.from_user(student)


@pytest.fixture
def other_student_actor(other_student) -> Actor:
    return Actor.from_user(other_student)


@pytest.fixture
def moderator_actor(moderator) -> Actor:
    return Actor.from_user(moderator)


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor.from_user(admin)


@pytest.fixture
def superadmin_actor(superadmin) -> Actor:
    return Actor.from_user(superadmin)


def auth_headers_for(user: User) -> dict:
    """Bearer headers for a user."""
    role = user.role.value if hasattr(user.role, "value") else user.role
    token, _ = create_access_token(user.id, user.email, role, user.faculty)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    return auth_headers_for


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the test database."""
    from eduscope.main import app

    app.dependency_overrides[get_session_maker] = lambda: session_maker
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
