from pydantic import BaseModel
from datetime import datetime

from league_scoring.services.episode_state import CommissionerActionType, EpisodeState


class EpisodeStateResponse(BaseModel):
    league_season_id: int
    episode_number: int
    state: EpisodeState


class ComputedEpisodeState(BaseModel):
    episode_number: int
    state: EpisodeState
    air_date: datetime | None
    total_questions: int
    scored_questions: int
    can_submit: bool
    needs_scoring: bool
    questions_ready: bool
    is_current_episode: bool


class CommissionerAction(BaseModel):
    episode_number: int
    action: CommissionerActionType
    label: str
    priority: str


class LeagueEpisodeStatesResponse(BaseModel):
    episodes: list[ComputedEpisodeState]
    current_episode: int
    is_commissioner: bool
    commissioner_actions: list[CommissionerAction]
