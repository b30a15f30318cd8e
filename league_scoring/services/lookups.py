from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from league_scoring.core.exceptions import NotFoundError
from league_scoring.models.models import Episode, LeagueSeason, Season, Team


async def get_league_season_or_raise(db: AsyncSession, league_season_id: int) -> LeagueSeason:
    result = await db.execute(select(LeagueSeason).where(LeagueSeason.id == league_season_id))
    league_season = result.scalar_one_or_none()
    if not league_season:
        raise NotFoundError(f"League season {league_season_id} not found")
    return league_season


async def get_season_for_league_season(db: AsyncSession, league_season: LeagueSeason) -> Season:
    result = await db.execute(select(Season).where(Season.id == league_season.season_id))
    return result.scalar_one()


async def get_team_or_raise(db: AsyncSession, team_id: int) -> Team:
    result = await db.execute(select(Team).where(Team.id == team_id))
    team = result.scalar_one_or_none()
    if not team:
        raise NotFoundError(f"Team {team_id} not found")
    return team


async def get_team_for_owner(db: AsyncSession, league_season_id: int, owner_id: str) -> Team | None:
    result = await db.execute(
        select(Team).where(
            Team.league_season_id == league_season_id,
            Team.owner_id == owner_id,
        )
    )
    return result.scalar_one_or_none()


async def get_episode(db: AsyncSession, season_id: int, episode_number: int) -> Episode | None:
    result = await db.execute(
        select(Episode).where(
            Episode.season_id == season_id,
            Episode.episode_number == episode_number,
        )
    )
    return result.scalar_one_or_none()
