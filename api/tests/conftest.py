"""Shared fixtures: an in-memory SQLite database per test and an HTTP client.

SQLite stands in for PostgreSQL here. Row locks (FOR UPDATE) are no-ops on
SQLite, but unique constraints, the partial unique index on accepted answers
and SAVEPOINTs behave the same, which is what the vote ledger and acceptance
paths rely on.
"""

import uuid
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from askdesk.database import get_db
from askdesk.dependencies import hash_api_key
from askdesk.main import app
from askdesk.models import Answer, AnswerVisibleUser, Base, Question, Team, TeamMember, User


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


# --- factories ---------------------------------------------------------------


async def make_user(
    db: AsyncSession,
    role: Optional[str] = None,
    department: Optional[str] = None,
    reputation: int = 0,
    api_key: Optional[str] = None,
) -> User:
    user = User(
        email=f"{uuid.uuid4().hex[:10]}@example.com",
        api_key_hash=hash_api_key(api_key) if api_key else None,
        role=role,
        department=department,
        reputation=reputation,
    )
    db.add(user)
    await db.flush()
    return user


async def make_question(
    db: AsyncSession, author: User, team_id: Optional[uuid.UUID] = None
) -> Question:
    question = Question(
        author_id=author.id,
        title="How do I rotate the staging TLS cert?",
        body="The cert expires next week.",
        team_id=team_id,
    )
    db.add(question)
    await db.flush()
    return question


async def make_answer(
    db: AsyncSession,
    question: Question,
    author: User,
    visibility_type: str = "public",
    roles: Optional[list[str]] = None,
    departments: Optional[list[str]] = None,
    users: Optional[list[uuid.UUID]] = None,
) -> Answer:
    answer = Answer(
        question_id=question.id,
        author_id=author.id,
        body="Run the renew job from the ops console.",
        visibility_type=visibility_type,
        visible_to_roles=roles or [],
        visible_to_departments=departments or [],
        team_id=question.team_id,
        visible_user_links=[AnswerVisibleUser(user_id=user_id) for user_id in users or []],
    )
    db.add(answer)
    await db.flush()
    return answer


async def make_team(db: AsyncSession, owner: User, *members: User) -> Team:
    team = Team(name="Platform", owner_id=owner.id)
    db.add(team)
    await db.flush()
    for user in (owner, *members):
        db.add(TeamMember(team_id=team.id, user_id=user.id))
    await db.flush()
    return team


async def reputation_of(db: AsyncSession, user: User) -> int:
    await db.refresh(user, ["reputation"])
    return user.reputation
