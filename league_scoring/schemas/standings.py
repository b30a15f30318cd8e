from pydantic import BaseModel


class StandingsEntry(BaseModel):
    id: int
    name: str
    owner_id: str
    total_points: int
    rank: int
    is_current_user: bool


class StandingsResponse(BaseModel):
    league_season_id: int
    teams: list[StandingsEntry]


class EpisodeHistoryItem(BaseModel):
    episode_number: int
    question_points: int
    retention_points: int
    total_episode_points: int
    running_total: int


class RosterIntervalItem(BaseModel):
    id: int
    castaway_id: int
    castaway_name: str
    start_episode: int
    end_episode: int | None
    is_active: bool


class DetailedStandingsEntry(StandingsEntry):
    rank_change: int
    episode_history: list[EpisodeHistoryItem]
    roster: list[RosterIntervalItem]


class DetailedStandingsResponse(BaseModel):
    league_season_id: int
    current_episode: int
    teams: list[DetailedStandingsEntry]
