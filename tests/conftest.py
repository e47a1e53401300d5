"""Shared test fixtures: settings, in-memory database, seeded registry, and auth tokens."""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import election_api.models  # noqa: F401
from election_api.core.cache import InMemoryResultCache
from election_api.core.config import Settings
from election_api.core.database import enable_sqlite_foreign_keys
from election_api.core.security import create_access_token, create_voter_token, hash_password
from election_api.models.ballot import BALLOT_SOURCE_IMPORT, Ballot
from election_api.models.base import Base
from election_api.models.candidate import Candidate
from election_api.models.geography import Constituency, District, PollingStation, Ward
from election_api.models.position import Position
from election_api.models.user import User
from election_api.models.voter import Voter

TEST_SECRET = "test-secret-key-not-for-production"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        _env_file=None,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine with foreign keys enforced."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Per-test async session; attributes stay loaded across commits like the app's sessions."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def result_cache() -> InMemoryResultCache:
    return InMemoryResultCache(ttl_seconds=60)


async def _seed_registry(session: AsyncSession) -> None:
    """Seed a small election.

    Geography: district D1 holds constituencies C1 (wards W1, W2) and C2
    (ward W3); one polling station per ward (S1, S2, S3).

    Positions and candidates:
        PRES (national): A, E
        MP (constituency): B and F in C1, G in C2
        COUNC (ward): D and H in W1, K in W3

    Voters: V1 and V2 at S1 (W1/C1), V3 at S2 (W2/C1), V4 at S3 (W3/C2).
    """
    session.add(District(id="D1", name="Central"))
    session.add_all(
        [
            Constituency(id="C1", name="North", district_id="D1"),
            Constituency(id="C2", name="South", district_id="D1"),
        ]
    )
    session.add_all(
        [
            Ward(id="W1", name="Riverside", constituency_id="C1"),
            Ward(id="W2", name="Hilltop", constituency_id="C1"),
            Ward(id="W3", name="Harbour", constituency_id="C2"),
        ]
    )
    session.add_all(
        [
            PollingStation(id="S1", name="Riverside School", ward_id="W1"),
            PollingStation(id="S2", name="Hilltop Hall", ward_id="W2"),
            PollingStation(id="S3", name="Harbour Clinic", ward_id="W3"),
        ]
    )
    session.add_all(
        [
            Position(id="PRES", title="President", kind="national"),
            Position(id="MP", title="Member of Parliament", kind="constituency"),
            Position(id="COUNC", title="Ward Councillor", kind="ward"),
        ]
    )
    await session.flush()
    session.add_all(
        [
            Candidate(id="A", position_id="PRES", name="Amina Otieno", party="Unity"),
            Candidate(id="E", position_id="PRES", name="Eli Mwangi", party="Reform"),
            Candidate(id="B", position_id="MP", name="Brian Kip", party="Unity", constituency_id="C1"),
            Candidate(id="F", position_id="MP", name="Faith Njeri", party="Reform", constituency_id="C1"),
            Candidate(id="G", position_id="MP", name="George Ochieng", party="Unity", constituency_id="C2"),
            Candidate(id="D", position_id="COUNC", name="Dorcas Wanjiru", ward_id="W1"),
            Candidate(id="H", position_id="COUNC", name="Hassan Ali", ward_id="W1"),
            Candidate(id="K", position_id="COUNC", name="Kevin Barasa", ward_id="W3"),
        ]
    )
    session.add_all(
        [
            Voter(id="V1", national_id="N001", first_name="Grace", last_name="Akinyi", station_id="S1"),
            Voter(id="V2", national_id="N002", first_name="Peter", last_name="Kamau", station_id="S1"),
            Voter(id="V3", national_id="N003", first_name="Mercy", last_name="Chebet", station_id="S2"),
            Voter(id="V4", national_id="N004", first_name="Omar", last_name="Hassan", station_id="S3"),
        ]
    )
    await session.commit()


@pytest.fixture
async def registry(async_session: AsyncSession) -> AsyncSession:
    """In-memory session over the seeded election (see ``_seed_registry``)."""
    await _seed_registry(async_session)
    return async_session


@pytest.fixture
async def ledger_sessions(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Session factory over a file-backed database holding the seeded election.

    Every session gets its own connection, so concurrent tasks really race
    at the database instead of sharing one in-memory connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        await _seed_registry(session)

    yield factory

    await engine.dispose()


def _make_import_ballot(
    voter_id: str,
    position_id: str,
    candidate_id: str | None,
    station_id: str,
    cast_at: datetime | None = None,
) -> Ballot:
    """Ballot row as written by the bulk import path (no admission checks)."""
    return Ballot(
        id=uuid.uuid4(),
        voter_id=voter_id,
        position_id=position_id,
        candidate_id=candidate_id,
        station_id=station_id,
        source=BALLOT_SOURCE_IMPORT,
        cast_at=cast_at or datetime(2026, 8, 9, 10, 0, tzinfo=UTC),
    )


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """Create a sample admin user in the test database."""
    user = User(
        id=uuid.uuid4(),
        username="returning-officer",
        email="ro@elections.org",
        hashed_password=hash_password("testpassword123"),
        role="admin",
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
def admin_token(settings: Settings) -> str:
    """Access token for an admin official."""
    return create_access_token(
        subject="returning-officer",
        role="admin",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def voter_token(settings: Settings) -> str:
    """Voting session token for voter V1."""
    return create_voter_token(voter_id="V1", secret_key=settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def import_ballot():  # type: ignore[no-untyped-def]
    """Factory for ledger rows that arrive through the bulk import path."""
    return _make_import_ballot
