"""
Roster ledger: membership intervals between teams and castaways.

A castaway counts for a team on episode e iff start_episode <= e and
(end_episode is None or end_episode >= e). Both ends are inclusive.
History is never rewritten: removing a castaway closes its interval,
re-adding opens a fresh one.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from league_scoring.core.exceptions import NotFoundError, StateError, ValidationError
from league_scoring.services.lookups import get_team_or_raise
from league_scoring.models.models import (
    Team, TeamCastaway, Castaway, LeagueSeason, Season,
)

logger = logging.getLogger(__name__)


def covers_episode(start_episode: int, end_episode: int | None, episode_number: int) -> bool:
    """Inclusive coverage test for one membership interval."""
    if start_episode > episode_number:
        return False
    return end_episode is None or end_episode >= episode_number


async def get_membership_intervals(db: AsyncSession, team_id: int) -> list[TeamCastaway]:
    """Every interval ever recorded for a team, oldest first."""
    result = await db.execute(
        select(TeamCastaway)
        .where(TeamCastaway.team_id == team_id)
        .order_by(TeamCastaway.start_episode, TeamCastaway.id)
    )
    return list(result.scalars().all())


async def get_roster_for_episode(db: AsyncSession, team_id: int, episode_number: int) -> list[int]:
    intervals = await get_membership_intervals(db, team_id)
    return sorted({
        tc.castaway_id for tc in intervals
        if covers_episode(tc.start_episode, tc.end_episode, episode_number)
    })


async def _get_active_episode(db: AsyncSession, team: Team) -> int:
    result = await db.execute(
        select(Season.active_episode)
        .join(LeagueSeason, LeagueSeason.season_id == Season.id)
        .where(LeagueSeason.id == team.league_season_id)
    )
    return result.scalar_one()


async def open_interval(
    db: AsyncSession,
    team_id: int,
    castaway_id: int,
    start_episode: int | None = None,
) -> TeamCastaway:
    """Put a castaway on a team from start_episode (default: the active episode) onward."""
    team = await get_team_or_raise(db, team_id)

    castaway_result = await db.execute(
        select(Castaway)
        .join(LeagueSeason, LeagueSeason.season_id == Castaway.season_id)
        .where(Castaway.id == castaway_id, LeagueSeason.id == team.league_season_id)
    )
    if castaway_result.scalar_one_or_none() is None:
        raise NotFoundError(f"Castaway {castaway_id} not found in this team's season")

    if start_episode is None:
        start_episode = await _get_active_episode(db, team)
    if start_episode < 1:
        raise ValidationError("start_episode must be at least 1")

    history_result = await db.execute(
        select(TeamCastaway)
        .where(TeamCastaway.team_id == team_id, TeamCastaway.castaway_id == castaway_id)
        .order_by(TeamCastaway.start_episode)
    )
    history = history_result.scalars().all()

    if any(tc.end_episode is None for tc in history):
        raise StateError("Castaway is already on this team")

    # Intervals for the same pair must not overlap
    last_end = max((tc.end_episode for tc in history), default=None)
    if last_end is not None and start_episode <= last_end:
        raise ValidationError(
            f"New interval must start after episode {last_end}, when the previous one closed"
        )

    entry = TeamCastaway(
        team_id=team_id,
        castaway_id=castaway_id,
        start_episode=start_episode,
        end_episode=None,
    )
    db.add(entry)
    await db.flush()
    logger.info("Opened roster interval team=%s castaway=%s from episode %s", team_id, castaway_id, start_episode)
    return entry


async def close_interval(
    db: AsyncSession,
    team_id: int,
    castaway_id: int,
    end_episode: int | None = None,
) -> TeamCastaway:
    """
    Close the castaway's open interval. Defaults to active_episode - 1, so a
    castaway removed during episode N no longer earns retention for N.
    """
    team = await get_team_or_raise(db, team_id)

    result = await db.execute(
        select(TeamCastaway).where(
            TeamCastaway.team_id == team_id,
            TeamCastaway.castaway_id == castaway_id,
            TeamCastaway.end_episode.is_(None),
        )
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundError("Castaway is not currently on this team")

    if end_episode is None:
        end_episode = await _get_active_episode(db, team) - 1
    # end_episode = start_episode - 1 is allowed: the castaway never counted
    if end_episode < entry.start_episode - 1:
        raise ValidationError("end_episode cannot precede the interval start")

    entry.end_episode = end_episode
    await db.flush()
    logger.info("Closed roster interval team=%s castaway=%s at episode %s", team_id, castaway_id, end_episode)
    return entry
