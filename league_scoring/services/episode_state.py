"""
Episode lifecycle, derived on read from question counts, air date and the
season's active episode. Nothing here is stored.
"""

import enum
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from league_scoring.models.models import Episode, LeagueQuestion
from league_scoring.services.lookups import (
    get_episode, get_league_season_or_raise, get_season_for_league_season,
)


class EpisodeState(str, enum.Enum):
    FUTURE = "FUTURE"
    QUESTIONS_NOT_READY = "QUESTIONS_NOT_READY"
    SUBMISSIONS_OPEN = "SUBMISSIONS_OPEN"
    SUBMISSIONS_CLOSED = "SUBMISSIONS_CLOSED"
    PARTIALLY_SCORED = "PARTIALLY_SCORED"
    FULLY_SCORED = "FULLY_SCORED"


class CommissionerActionType(str, enum.Enum):
    CREATE_QUESTIONS = "CREATE_QUESTIONS"
    SCORE_QUESTIONS = "SCORE_QUESTIONS"
    CONTINUE_SCORING = "CONTINUE_SCORING"


PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; treat them as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_before_deadline(air_date: datetime | None, now: datetime) -> bool:
    """No air date means no deadline."""
    if air_date is None:
        return True
    return as_utc(now) < as_utc(air_date)


def compute_episode_state(
    episode_number: int,
    active_episode: int,
    question_count: int,
    scored_count: int,
    air_date: datetime | None,
    now: datetime,
) -> EpisodeState:
    if episode_number > active_episode:
        return EpisodeState.FUTURE
    if question_count == 0:
        return EpisodeState.QUESTIONS_NOT_READY
    if air_date is not None and as_utc(now) < as_utc(air_date):
        return EpisodeState.SUBMISSIONS_OPEN
    if scored_count == 0:
        return EpisodeState.SUBMISSIONS_CLOSED
    if scored_count < question_count:
        return EpisodeState.PARTIALLY_SCORED
    return EpisodeState.FULLY_SCORED


def commissioner_action_for(
    episode_number: int,
    active_episode: int,
    state: EpisodeState,
    question_count: int,
    scored_count: int,
) -> dict | None:
    """Advisory to-do item for a commissioner, or None when nothing is pending."""
    if state == EpisodeState.QUESTIONS_NOT_READY:
        return {
            "episode_number": episode_number,
            "action": CommissionerActionType.CREATE_QUESTIONS,
            "label": f"Create questions for Episode {episode_number}",
            "priority": "high" if episode_number == active_episode else "medium",
        }
    if state == EpisodeState.SUBMISSIONS_CLOSED:
        return {
            "episode_number": episode_number,
            "action": CommissionerActionType.SCORE_QUESTIONS,
            "label": f"Score Episode {episode_number} ({question_count} questions)",
            "priority": "high",
        }
    if state == EpisodeState.PARTIALLY_SCORED:
        return {
            "episode_number": episode_number,
            "action": CommissionerActionType.CONTINUE_SCORING,
            "label": f"Continue scoring Episode {episode_number} ({scored_count}/{question_count})",
            "priority": "high",
        }
    return None


async def _question_counts(
    db: AsyncSession, league_season_id: int, episode_number: int | None = None
) -> dict[int, tuple[int, int]]:
    """episode_number -> (question_count, scored_count)"""
    query = select(LeagueQuestion.episode_number, LeagueQuestion.is_scored).where(
        LeagueQuestion.league_season_id == league_season_id
    )
    if episode_number is not None:
        query = query.where(LeagueQuestion.episode_number == episode_number)
    result = await db.execute(query)

    counts = defaultdict(lambda: [0, 0])
    for ep_number, is_scored in result.all():
        counts[ep_number][0] += 1
        if is_scored:
            counts[ep_number][1] += 1
    return {ep: (total, scored) for ep, (total, scored) in counts.items()}


async def get_episode_state(
    db: AsyncSession,
    league_season_id: int,
    episode_number: int,
    now: datetime | None = None,
) -> EpisodeState:
    now = now or utcnow()
    league_season = await get_league_season_or_raise(db, league_season_id)
    season = await get_season_for_league_season(db, league_season)
    episode = await get_episode(db, season.id, episode_number)

    counts = await _question_counts(db, league_season_id, episode_number)
    question_count, scored_count = counts.get(episode_number, (0, 0))

    return compute_episode_state(
        episode_number,
        season.active_episode,
        question_count,
        scored_count,
        episode.air_date if episode else None,
        now,
    )


async def get_league_episode_states(
    db: AsyncSession,
    league_season_id: int,
    is_commissioner: bool = False,
    now: datetime | None = None,
) -> dict:
    """State of every episode of the season plus the commissioner's action list."""
    now = now or utcnow()
    league_season = await get_league_season_or_raise(db, league_season_id)
    season = await get_season_for_league_season(db, league_season)
    active_episode = season.active_episode

    episodes_result = await db.execute(
        select(Episode)
        .where(Episode.season_id == season.id)
        .order_by(Episode.episode_number)
    )
    episodes = episodes_result.scalars().all()
    counts = await _question_counts(db, league_season_id)

    items = []
    actions = []
    for episode in episodes:
        question_count, scored_count = counts.get(episode.episode_number, (0, 0))
        state = compute_episode_state(
            episode.episode_number, active_episode, question_count, scored_count,
            episode.air_date, now,
        )
        items.append({
            "episode_number": episode.episode_number,
            "state": state,
            "air_date": episode.air_date,
            "total_questions": question_count,
            "scored_questions": scored_count,
            "can_submit": state == EpisodeState.SUBMISSIONS_OPEN,
            "needs_scoring": state in (EpisodeState.SUBMISSIONS_CLOSED, EpisodeState.PARTIALLY_SCORED),
            "questions_ready": question_count > 0,
            "is_current_episode": episode.episode_number == active_episode,
        })

        if is_commissioner:
            action = commissioner_action_for(
                episode.episode_number, active_episode, state, question_count, scored_count
            )
            if action:
                actions.append(action)

    # sort() is stable, so episode order is kept within a priority
    actions.sort(key=lambda a: PRIORITY_ORDER[a["priority"]])

    return {
        "episodes": items,
        "current_episode": active_episode,
        "is_commissioner": is_commissioner,
        "commissioner_actions": actions,
    }


async def get_current_episode_state(
    db: AsyncSession,
    league_season_id: int,
    is_commissioner: bool = False,
    now: datetime | None = None,
) -> dict | None:
    states = await get_league_episode_states(db, league_season_id, is_commissioner, now)
    episodes = states["episodes"]
    for item in episodes:
        if item["is_current_episode"]:
            return item
    return episodes[0] if episodes else None
