"""
Retention bonus: points per castaway still on the roster for an episode.
"""

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from league_scoring.core.exceptions import ValidationError
from league_scoring.models.models import RetentionConfig, Team, TeamCastaway
from league_scoring.services.roster import covers_episode, get_membership_intervals


def count_active_castaways(intervals: Iterable[TeamCastaway], episode_number: int) -> int:
    return sum(
        1 for tc in intervals
        if covers_episode(tc.start_episode, tc.end_episode, episode_number)
    )


async def get_points_per_castaway(db: AsyncSession, league_season_id: int, episode_number: int) -> int:
    """Configured rate for an episode, 0 when nothing is configured."""
    result = await db.execute(
        select(RetentionConfig.points_per_castaway).where(
            RetentionConfig.league_season_id == league_season_id,
            RetentionConfig.episode_number == episode_number,
        )
    )
    rate = result.scalar_one_or_none()
    return rate or 0


async def calculate_retention_points(
    db: AsyncSession,
    team: Team,
    episode_number: int,
    intervals: list[TeamCastaway] | None = None,
) -> int:
    if intervals is None:
        intervals = await get_membership_intervals(db, team.id)
    active = count_active_castaways(intervals, episode_number)
    if active == 0:
        return 0
    rate = await get_points_per_castaway(db, team.league_season_id, episode_number)
    return active * rate


async def get_retention_config(db: AsyncSession, league_season_id: int) -> list[RetentionConfig]:
    result = await db.execute(
        select(RetentionConfig)
        .where(RetentionConfig.league_season_id == league_season_id)
        .order_by(RetentionConfig.episode_number)
    )
    return list(result.scalars().all())


async def update_retention_config(
    db: AsyncSession,
    league_season_id: int,
    episodes: list[dict],
) -> list[RetentionConfig]:
    """
    Upsert per-episode rates. Each item: {"episode_number", "points_per_castaway"}.
    Does not recalculate the ledger; callers trigger that explicitly.
    """
    for item in episodes:
        if item["episode_number"] < 1:
            raise ValidationError("episode_number must be at least 1")
        if item["points_per_castaway"] < 0:
            raise ValidationError("points_per_castaway cannot be negative")

    for item in episodes:
        existing_result = await db.execute(
            select(RetentionConfig).where(
                RetentionConfig.league_season_id == league_season_id,
                RetentionConfig.episode_number == item["episode_number"],
            )
        )
        config = existing_result.scalar_one_or_none()
        if config:
            config.points_per_castaway = item["points_per_castaway"]
        else:
            db.add(RetentionConfig(
                league_season_id=league_season_id,
                episode_number=item["episode_number"],
                points_per_castaway=item["points_per_castaway"],
            ))
    await db.flush()
    return await get_retention_config(db, league_season_id)
