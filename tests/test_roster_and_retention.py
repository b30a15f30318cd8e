import pytest

from league_scoring.core.exceptions import NotFoundError, StateError, ValidationError
from league_scoring.models.models import Castaway, Season
from league_scoring.services.retention import (
    calculate_retention_points, count_active_castaways, update_retention_config,
)
from league_scoring.services.roster import (
    close_interval, covers_episode, get_membership_intervals,
    get_roster_for_episode, open_interval,
)

from tests.conftest import build_league


@pytest.mark.parametrize("start,end,episode,expected", [
    (1, 3, 3, True),
    (1, 3, 4, False),
    (5, None, 4, False),
    (5, None, 5, True),
    (5, None, 12, True),
    (2, 1, 1, False),
    (2, 1, 2, False),
])
def test_covers_episode_is_inclusive(start, end, episode, expected):
    assert covers_episode(start, end, episode) is expected


@pytest.mark.asyncio
async def test_open_defaults_to_active_episode_and_close_to_previous(db):
    league = await build_league(db, active_episode=4)
    team = league.teams[0]
    castaway = league.castaways[0]

    entry = await open_interval(db, team.id, castaway.id)
    assert entry.start_episode == 4
    assert entry.end_episode is None

    league.season.active_episode = 7
    await db.flush()
    closed = await close_interval(db, team.id, castaway.id)
    assert closed.end_episode == 6
    assert await get_roster_for_episode(db, team.id, 6) == [castaway.id]
    assert await get_roster_for_episode(db, team.id, 7) == []


@pytest.mark.asyncio
async def test_second_open_interval_rejected(league, db):
    team, castaway = league.teams[0], league.castaways[0]
    await open_interval(db, team.id, castaway.id, start_episode=1)
    with pytest.raises(StateError):
        await open_interval(db, team.id, castaway.id, start_episode=3)


@pytest.mark.asyncio
async def test_reopen_must_follow_closed_interval(league, db):
    team, castaway = league.teams[0], league.castaways[0]
    await open_interval(db, team.id, castaway.id, start_episode=1)
    await close_interval(db, team.id, castaway.id, end_episode=3)

    with pytest.raises(ValidationError):
        await open_interval(db, team.id, castaway.id, start_episode=3)

    await open_interval(db, team.id, castaway.id, start_episode=5)
    intervals = await get_membership_intervals(db, team.id)
    assert [(i.start_episode, i.end_episode) for i in intervals] == [(1, 3), (5, None)]
    assert await get_roster_for_episode(db, team.id, 4) == []


@pytest.mark.asyncio
async def test_close_without_open_interval_is_not_found(league, db):
    with pytest.raises(NotFoundError):
        await close_interval(db, league.teams[0].id, league.castaways[0].id, end_episode=2)


@pytest.mark.asyncio
async def test_close_before_start_rejected(league, db):
    team, castaway = league.teams[0], league.castaways[0]
    await open_interval(db, team.id, castaway.id, start_episode=4)
    with pytest.raises(ValidationError):
        await close_interval(db, team.id, castaway.id, end_episode=2)
    # Closing at start - 1 means the castaway never counted
    closed = await close_interval(db, team.id, castaway.id, end_episode=3)
    assert count_active_castaways([closed], 4) == 0


@pytest.mark.asyncio
async def test_castaway_from_another_season_rejected(league, db):
    other_season = Season(season_number=51, name="Season 51", active_episode=1)
    db.add(other_season)
    await db.flush()
    stranger = Castaway(season_id=other_season.id, name="Stranger")
    db.add(stranger)
    await db.flush()

    with pytest.raises(NotFoundError):
        await open_interval(db, league.teams[0].id, stranger.id, start_episode=1)


@pytest.mark.asyncio
async def test_retention_counts_castaways_on_roster(league, db):
    team = league.teams[0]
    for castaway in league.castaways[:4]:
        await open_interval(db, team.id, castaway.id, start_episode=1)
    await update_retention_config(db, league.league_season.id, [
        {"episode_number": 3, "points_per_castaway": 2},
        {"episode_number": 4, "points_per_castaway": 2},
    ])

    assert await calculate_retention_points(db, team, 3) == 8

    await close_interval(db, team.id, league.castaways[0].id, end_episode=3)
    assert await calculate_retention_points(db, team, 3) == 8
    assert await calculate_retention_points(db, team, 4) == 6


@pytest.mark.asyncio
async def test_retention_late_addition_counts_from_start(league, db):
    team = league.teams[0]
    await open_interval(db, team.id, league.castaways[0].id, start_episode=5)
    await update_retention_config(db, league.league_season.id, [
        {"episode_number": 4, "points_per_castaway": 1},
        {"episode_number": 5, "points_per_castaway": 1},
    ])
    assert await calculate_retention_points(db, team, 4) == 0
    assert await calculate_retention_points(db, team, 5) == 1


@pytest.mark.asyncio
async def test_retention_zero_without_config_or_roster(league, db):
    team = league.teams[0]
    assert await calculate_retention_points(db, team, 1) == 0

    await open_interval(db, team.id, league.castaways[0].id, start_episode=1)
    assert await calculate_retention_points(db, team, 1) == 0


@pytest.mark.asyncio
async def test_retention_config_upserts_and_rejects_negative(league, db):
    lsid = league.league_season.id
    await update_retention_config(db, lsid, [{"episode_number": 1, "points_per_castaway": 1}])
    configs = await update_retention_config(db, lsid, [{"episode_number": 1, "points_per_castaway": 3}])
    assert [(c.episode_number, c.points_per_castaway) for c in configs] == [(1, 3)]

    with pytest.raises(ValidationError):
        await update_retention_config(db, lsid, [{"episode_number": 2, "points_per_castaway": -1}])
