import pytest
from sqlalchemy import select

from league_scoring.models.models import QuestionType, TeamEpisodePoints
from league_scoring.services import recalculation
from league_scoring.services.questions import create_question, score_questions, submit_answer
from league_scoring.services.recalculation import (
    get_ledger_horizon, recalculate_all_episode_points, recalculate_team_history, running_totals,
)
from league_scoring.services.retention import update_retention_config
from league_scoring.services.roster import close_interval, open_interval
from league_scoring.services.standings import get_detailed_standings, get_standings, rank_by_total

from tests.conftest import NOW, build_league


async def _ledger(db, team_id):
    result = await db.execute(
        select(TeamEpisodePoints)
        .where(TeamEpisodePoints.team_id == team_id)
        .order_by(TeamEpisodePoints.episode_number)
    )
    return [
        (r.episode_number, r.question_points, r.retention_points, r.total_episode_points, r.running_total)
        for r in result.scalars().all()
    ]


async def _scored_question(db, league, episode_number, team, answer, correct, point_value):
    question = await create_question(db, league.league_season.id, {
        "episode_number": episode_number,
        "text": f"Episode {episode_number} question",
        "type": QuestionType.FILL_IN_THE_BLANK,
        "point_value": point_value,
    })
    await submit_answer(db, league.league_season.id, question.id, team, answer, now=NOW)
    await score_questions(db, league.league_season.id, [{"question_id": question.id, "correct_answer": correct}])
    return question


def test_running_totals_are_prefix_sums():
    assert running_totals([3, -2, 0, 5]) == [3, 1, 1, 6]
    assert running_totals([]) == []


def test_rank_by_total_shares_ties():
    assert rank_by_total({1: 10, 2: 10, 3: 4}) == {1: 1, 2: 1, 3: 3}


@pytest.mark.asyncio
async def test_ledger_rows_combine_questions_and_retention(db):
    league = await build_league(db, active_episode=3)
    team = league.teams[0]
    for castaway in league.castaways[:2]:
        await open_interval(db, team.id, castaway.id, start_episode=1)
    await close_interval(db, team.id, league.castaways[1].id, end_episode=2)
    await update_retention_config(db, league.league_season.id, [
        {"episode_number": n, "points_per_castaway": 1} for n in (1, 2, 3)
    ])
    await _scored_question(db, league, 1, team, "Rob", "Rob", 4)
    await _scored_question(db, league, 3, team, "Rob", "Parvati", 4)

    summary = await recalculate_team_history(db, team.id, 3)

    assert await _ledger(db, team.id) == [
        (1, 4, 2, 6, 6),
        (2, 0, 2, 2, 8),
        (3, 0, 1, 1, 9),
    ]
    assert summary == {"team_id": team.id, "episodes_recalculated": 3, "final_total": 9}
    assert team.total_points == 9


@pytest.mark.asyncio
async def test_recalculation_is_idempotent(db):
    league = await build_league(db, active_episode=2)
    team = league.teams[0]
    await open_interval(db, team.id, league.castaways[0].id, start_episode=1)
    await update_retention_config(db, league.league_season.id, [{"episode_number": 2, "points_per_castaway": 3}])
    await _scored_question(db, league, 1, team, "Rob", "rob", 2)

    await recalculate_team_history(db, team.id, 2)
    first = await _ledger(db, team.id)
    await recalculate_team_history(db, team.id, 2)

    assert await _ledger(db, team.id) == first
    assert team.total_points == first[-1][-1] == 5


@pytest.mark.asyncio
async def test_no_episodes_means_zero_total(league, db):
    team = league.teams[0]
    summary = await recalculate_team_history(db, team.id, 0)
    assert summary["final_total"] == 0
    assert summary["episodes_recalculated"] == 0
    assert team.total_points == 0
    assert await _ledger(db, team.id) == []


@pytest.mark.asyncio
async def test_retention_change_picked_up_on_rebuild(db):
    league = await build_league(db, active_episode=2)
    team = league.teams[0]
    await open_interval(db, team.id, league.castaways[0].id, start_episode=1)
    await recalculate_team_history(db, team.id, 2)
    assert team.total_points == 0

    await update_retention_config(db, league.league_season.id, [
        {"episode_number": 1, "points_per_castaway": 2},
        {"episode_number": 2, "points_per_castaway": 2},
    ])
    await recalculate_team_history(db, team.id, 2)
    assert [row[-1] for row in await _ledger(db, team.id)] == [2, 4]
    assert team.total_points == 4


@pytest.mark.asyncio
async def test_league_recalculation_covers_every_team(db):
    league = await build_league(db, active_episode=4, team_count=3)
    summary = await recalculate_all_episode_points(db, league.league_season.id)
    assert summary == {"teams_recalculated": 3, "episodes": 4, "failed_team_ids": []}
    for team in league.teams:
        assert [row[0] for row in await _ledger(db, team.id)] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_failing_team_does_not_block_others(db, monkeypatch):
    league = await build_league(db, active_episode=2)
    good, bad = league.teams
    await _scored_question(db, league, 1, good, "Rob", "Rob", 3)

    real_calculate = recalculation.calculate_episode_points

    async def flaky_calculate(db, team, episode_number, intervals=None):
        if team.id == bad.id:
            raise RuntimeError("boom")
        return await real_calculate(db, team, episode_number, intervals=intervals)

    monkeypatch.setattr(recalculation, "calculate_episode_points", flaky_calculate)
    summary = await recalculate_all_episode_points(db, league.league_season.id)

    assert summary["teams_recalculated"] == 1
    assert summary["failed_team_ids"] == [bad.id]
    assert [row[-1] for row in await _ledger(db, good.id)] == [3, 3]
    assert await _ledger(db, bad.id) == []


@pytest.mark.asyncio
async def test_standings_follow_ledger_totals(db):
    league = await build_league(db, active_episode=2, team_count=3)
    team_1, team_2, team_3 = league.teams
    await _scored_question(db, league, 1, team_2, "Rob", "Rob", 5)
    await _scored_question(db, league, 2, team_3, "Rob", "Rob", 8)
    await recalculate_all_episode_points(db, league.league_season.id)

    standings = await get_standings(db, league.league_season.id, viewer_owner_id=team_1.owner_id)
    assert [(t["id"], t["total_points"], t["rank"]) for t in standings["teams"]] == [
        (team_3.id, 8, 1), (team_2.id, 5, 2), (team_1.id, 0, 3),
    ]
    assert [t["is_current_user"] for t in standings["teams"]] == [False, False, True]

    detailed = await get_detailed_standings(db, league.league_season.id)
    by_id = {t["id"]: t for t in detailed["teams"]}
    # After episode 1 team 2 led and team 3 was tied last
    assert by_id[team_3.id]["rank_change"] == 1
    assert by_id[team_2.id]["rank_change"] == -1
    assert [h["running_total"] for h in by_id[team_3.id]["episode_history"]] == [0, 8]

    filtered = await get_detailed_standings(db, league.league_season.id, episode_filter=2)
    assert all(len(t["episode_history"]) == 1 for t in filtered["teams"])


@pytest.mark.asyncio
async def test_league_rebuild_keeps_points_scored_past_active_episode(db):
    league = await build_league(db, active_episode=3)
    team = league.teams[0]
    await _scored_question(db, league, 3, team, "Rob", "Rob", 5)
    assert team.total_points == 5

    # Commissioner steps the active episode back after episode 3 was scored
    league.season.active_episode = 2
    await db.flush()
    assert await get_ledger_horizon(db, league.league_season.id) == 3

    summary = await recalculate_all_episode_points(db, league.league_season.id)

    assert summary["episodes"] == 3
    assert [(row[0], row[-1]) for row in await _ledger(db, team.id)] == [(1, 0), (2, 0), (3, 5)]
    assert team.total_points == 5


@pytest.mark.asyncio
async def test_ledger_horizon_defaults_to_active_episode(db):
    league = await build_league(db, active_episode=4)
    assert await get_ledger_horizon(db, league.league_season.id) == 4


@pytest.mark.asyncio
async def test_shorter_rebuild_drops_rows_past_the_bound(db):
    league = await build_league(db, active_episode=3)
    team = league.teams[0]
    await open_interval(db, team.id, league.castaways[0].id, start_episode=1)
    await update_retention_config(db, league.league_season.id, [
        {"episode_number": n, "points_per_castaway": n} for n in (1, 2, 3)
    ])
    await recalculate_team_history(db, team.id, 3)
    assert [row[-1] for row in await _ledger(db, team.id)] == [1, 3, 6]

    summary = await recalculate_team_history(db, team.id, 2)

    assert await _ledger(db, team.id) == [(1, 0, 1, 1, 1), (2, 0, 2, 2, 3)]
    assert summary["final_total"] == team.total_points == 3
