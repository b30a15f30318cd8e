"""
Shared fixtures: an in-memory SQLite database per test and a small league
builder. Services are exercised against real SQL, not mocks.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

# Must be set before league_scoring.core.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from league_scoring.core.database import Base
from league_scoring.models.models import (
    Castaway, Episode, League, LeagueSeason, Season, Team,
)

NOW = datetime(2026, 3, 4, 20, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=1)
FUTURE = NOW + timedelta(days=1)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over
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
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@dataclass
class LeagueFixture:
    season: Season
    league_season: LeagueSeason
    episodes: dict[int, Episode]
    teams: list[Team]
    castaways: list[Castaway] = field(default_factory=list)


async def build_league(
    db: AsyncSession,
    active_episode: int = 1,
    episode_count: int = 6,
    team_count: int = 2,
    castaway_count: int = 8,
    air_dates: dict[int, datetime | None] | None = None,
) -> LeagueFixture:
    """Season + episodes + castaways + one league season with team_count teams."""
    season = Season(season_number=50, name="Season 50", active_episode=active_episode)
    db.add(season)
    await db.flush()

    air_dates = air_dates or {}
    episodes = {}
    for number in range(1, episode_count + 1):
        episode = Episode(
            season_id=season.id,
            episode_number=number,
            title=f"Episode {number}",
            air_date=air_dates.get(number),
        )
        db.add(episode)
        episodes[number] = episode

    castaways = [Castaway(season_id=season.id, name=f"Castaway {i}") for i in range(1, castaway_count + 1)]
    db.add_all(castaways)

    league = League(name="Test League", slug="test-league")
    db.add(league)
    await db.flush()

    league_season = LeagueSeason(league_id=league.id, season_id=season.id)
    db.add(league_season)
    await db.flush()

    teams = [
        Team(league_season_id=league_season.id, owner_id=f"owner-{i}", name=f"Team {i}", total_points=0)
        for i in range(1, team_count + 1)
    ]
    db.add_all(teams)
    await db.flush()

    return LeagueFixture(
        season=season,
        league_season=league_season,
        episodes=episodes,
        teams=teams,
        castaways=castaways,
    )


@pytest_asyncio.fixture
async def league(db):
    return await build_league(db)
