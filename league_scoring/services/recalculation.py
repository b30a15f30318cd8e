"""
Episode points ledger rebuild.

The ledger is never patched with deltas. Every call recomputes episodes
1..N from current answers, roster intervals and retention config, so running
it twice over unchanged data writes identical rows.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete

from league_scoring.models.models import (
    LeagueQuestion, PlayerAnswer, Team, TeamEpisodePoints,
)
from league_scoring.services.lookups import (
    get_league_season_or_raise, get_season_for_league_season, get_team_or_raise,
)
from league_scoring.services.retention import calculate_retention_points
from league_scoring.services.roster import get_membership_intervals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodePoints:
    episode_number: int
    question_points: int
    retention_points: int

    @property
    def total_episode_points(self) -> int:
        return self.question_points + self.retention_points


def running_totals(episode_totals: Iterable[int]) -> list[int]:
    """Prefix sums, with an implicit running total of 0 before episode 1."""
    totals = []
    running = 0
    for points in episode_totals:
        running += points
        totals.append(running)
    return totals


async def get_ledger_horizon(db: AsyncSession, league_season_id: int) -> int:
    """
    Last episode the ledger must cover: the season's active episode, or the
    highest episode with a scored question if that is later. Every rebuild
    path uses this bound so scored points are never cut off.
    """
    league_season = await get_league_season_or_raise(db, league_season_id)
    season = await get_season_for_league_season(db, league_season)
    result = await db.execute(
        select(func.max(LeagueQuestion.episode_number)).where(
            LeagueQuestion.league_season_id == league_season_id,
            LeagueQuestion.is_scored == True,  # noqa: E712
        )
    )
    highest_scored = result.scalar_one_or_none() or 0
    return max(season.active_episode, highest_scored)


async def get_question_points(db: AsyncSession, team_id: int, episode_number: int) -> int:
    """Sum of points_earned over the team's answers to scored questions of one episode."""
    result = await db.execute(
        select(func.coalesce(func.sum(PlayerAnswer.points_earned), 0))
        .join(LeagueQuestion, PlayerAnswer.league_question_id == LeagueQuestion.id)
        .where(
            PlayerAnswer.team_id == team_id,
            LeagueQuestion.episode_number == episode_number,
            LeagueQuestion.is_scored == True,  # noqa: E712
        )
    )
    return int(result.scalar_one())


async def calculate_episode_points(
    db: AsyncSession,
    team: Team,
    episode_number: int,
    intervals=None,
) -> EpisodePoints:
    question_points = await get_question_points(db, team.id, episode_number)
    retention_points = await calculate_retention_points(db, team, episode_number, intervals=intervals)
    return EpisodePoints(
        episode_number=episode_number,
        question_points=question_points,
        retention_points=retention_points,
    )


async def _upsert_ledger_row(
    db: AsyncSession, team_id: int, points: EpisodePoints, running_total: int
) -> TeamEpisodePoints:
    existing_result = await db.execute(
        select(TeamEpisodePoints).where(
            TeamEpisodePoints.team_id == team_id,
            TeamEpisodePoints.episode_number == points.episode_number,
        )
    )
    row = existing_result.scalar_one_or_none()
    if row is None:
        row = TeamEpisodePoints(team_id=team_id, episode_number=points.episode_number)
        db.add(row)

    row.question_points = points.question_points
    row.retention_points = points.retention_points
    row.total_episode_points = points.total_episode_points
    row.running_total = running_total
    return row


async def recalculate_team_history(db: AsyncSession, team_id: int, max_episode: int) -> dict:
    """
    Rebuild ledger rows 1..max_episode for one team and republish
    Team.total_points. Rows past max_episode are dropped so the highest row
    always carries the published total. All rows and the total land
    together or not at all.
    """
    team = await get_team_or_raise(db, team_id)

    async with db.begin_nested():
        intervals = await get_membership_intervals(db, team.id)

        episode_points = []
        for episode_number in range(1, max_episode + 1):
            episode_points.append(
                await calculate_episode_points(db, team, episode_number, intervals=intervals)
            )

        totals = running_totals(p.total_episode_points for p in episode_points)
        for points, running_total in zip(episode_points, totals):
            await _upsert_ledger_row(db, team.id, points, running_total)

        await db.execute(
            delete(TeamEpisodePoints).where(
                TeamEpisodePoints.team_id == team.id,
                TeamEpisodePoints.episode_number > max(max_episode, 0),
            )
        )

        final_total = totals[-1] if totals else 0
        team.total_points = final_total
        await db.flush()

    logger.info(
        "Recalculated team %s through episode %s: total=%s", team.id, max_episode, final_total
    )
    return {
        "team_id": team.id,
        "episodes_recalculated": max(max_episode, 0),
        "final_total": final_total,
    }


async def recalculate_all_episode_points(db: AsyncSession, league_season_id: int) -> dict:
    """
    Rebuild every team in a league season through the ledger horizon.
    Each team runs in its own savepoint: a failure rolls back only that team.
    """
    max_episode = await get_ledger_horizon(db, league_season_id)

    teams_result = await db.execute(
        select(Team.id)
        .where(Team.league_season_id == league_season_id)
        .order_by(Team.id)
    )
    team_ids = [row[0] for row in teams_result.all()]

    recalculated = 0
    failed_team_ids = []
    for team_id in team_ids:
        try:
            await recalculate_team_history(db, team_id, max_episode)
        except Exception:
            logger.exception("Recalculation failed for team %s; its previous ledger rows are kept", team_id)
            failed_team_ids.append(team_id)
            continue
        recalculated += 1

    if failed_team_ids:
        logger.warning(
            "League season %s: %s of %s teams recalculated",
            league_season_id, recalculated, len(team_ids),
        )

    return {
        "teams_recalculated": recalculated,
        "episodes": max_episode,
        "failed_team_ids": failed_team_ids,
    }
