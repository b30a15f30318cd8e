"""
Standings read straight from the ledger (Team.total_points and
team_episode_points). Nothing here recomputes points.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from league_scoring.models.models import Castaway, Team, TeamCastaway, TeamEpisodePoints
from league_scoring.services.lookups import get_league_season_or_raise, get_season_for_league_season


def rank_by_total(totals: dict[int, int]) -> dict[int, int]:
    """Competition ranking: teams on equal totals share a rank."""
    ranks = {}
    for team_id, total in totals.items():
        ranks[team_id] = 1 + sum(1 for other in totals.values() if other > total)
    return ranks


async def _teams_by_points(db: AsyncSession, league_season_id: int) -> list[Team]:
    result = await db.execute(
        select(Team)
        .where(Team.league_season_id == league_season_id)
        .order_by(Team.total_points.desc(), Team.id)
    )
    return list(result.scalars().all())


async def get_standings(db: AsyncSession, league_season_id: int, viewer_owner_id: str | None = None) -> dict:
    await get_league_season_or_raise(db, league_season_id)
    teams = await _teams_by_points(db, league_season_id)
    return {
        "league_season_id": league_season_id,
        "teams": [
            {
                "id": team.id,
                "name": team.name,
                "owner_id": team.owner_id,
                "total_points": team.total_points,
                "rank": rank,
                "is_current_user": team.owner_id == viewer_owner_id,
            }
            for rank, team in enumerate(teams, 1)
        ],
    }


async def get_detailed_standings(
    db: AsyncSession,
    league_season_id: int,
    viewer_owner_id: str | None = None,
    episode_filter: int | None = None,
) -> dict:
    """Standings plus each team's ledger history, roster intervals and rank movement."""
    league_season = await get_league_season_or_raise(db, league_season_id)
    season = await get_season_for_league_season(db, league_season)
    current_episode = season.active_episode

    teams = await _teams_by_points(db, league_season_id)
    team_ids = [t.id for t in teams]

    points_result = await db.execute(
        select(TeamEpisodePoints)
        .where(TeamEpisodePoints.team_id.in_(team_ids))
        .order_by(TeamEpisodePoints.episode_number)
    )
    history = {}
    for row in points_result.scalars().all():
        history.setdefault(row.team_id, []).append(row)

    roster_result = await db.execute(
        select(TeamCastaway, Castaway.name)
        .join(Castaway, TeamCastaway.castaway_id == Castaway.id)
        .where(TeamCastaway.team_id.in_(team_ids))
        .order_by(TeamCastaway.start_episode, TeamCastaway.id)
    )
    rosters = {}
    for interval, castaway_name in roster_result.all():
        rosters.setdefault(interval.team_id, []).append({
            "id": interval.id,
            "castaway_id": interval.castaway_id,
            "castaway_name": castaway_name,
            "start_episode": interval.start_episode,
            "end_episode": interval.end_episode,
            "is_active": interval.end_episode is None,
        })

    # Rank movement compares against the previous episode's running totals
    previous_ranks = {}
    if current_episode > 1:
        previous_totals = {
            team_id: row.running_total
            for team_id, rows in history.items()
            for row in rows
            if row.episode_number == current_episode - 1
        }
        previous_ranks = rank_by_total(previous_totals)

    entries = []
    for rank, team in enumerate(teams, 1):
        rows = history.get(team.id, [])
        if episode_filter is not None:
            rows = [r for r in rows if r.episode_number == episode_filter]
        previous_rank = previous_ranks.get(team.id)
        entries.append({
            "id": team.id,
            "name": team.name,
            "owner_id": team.owner_id,
            "total_points": team.total_points,
            "rank": rank,
            "rank_change": previous_rank - rank if previous_rank is not None else 0,
            "is_current_user": team.owner_id == viewer_owner_id,
            "episode_history": [
                {
                    "episode_number": r.episode_number,
                    "question_points": r.question_points,
                    "retention_points": r.retention_points,
                    "total_episode_points": r.total_episode_points,
                    "running_total": r.running_total,
                }
                for r in rows
            ],
            "roster": rosters.get(team.id, []),
        })

    return {
        "league_season_id": league_season_id,
        "current_episode": current_episode,
        "teams": entries,
    }
