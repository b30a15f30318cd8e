from pydantic import BaseModel, Field
from datetime import datetime

from league_scoring.models.models import QuestionType
from league_scoring.services.episode_state import EpisodeState


class QuestionCreate(BaseModel):
    episode_number: int = Field(..., gt=0)
    text: str = Field(..., min_length=1)
    type: QuestionType
    options: list[str] | None = None
    point_value: int = Field(1, ge=0)
    sort_order: int | None = None
    is_wager: bool = False
    min_wager: int | None = Field(None, ge=0)
    max_wager: int | None = Field(None, ge=0)


class QuestionUpdate(BaseModel):
    episode_number: int | None = Field(None, gt=0)
    text: str | None = None
    type: QuestionType | None = None
    options: list[str] | None = None
    point_value: int | None = Field(None, ge=0)
    sort_order: int | None = None
    is_wager: bool | None = None
    min_wager: int | None = Field(None, ge=0)
    max_wager: int | None = Field(None, ge=0)


class QuestionResponse(BaseModel):
    id: int
    league_season_id: int
    episode_number: int
    text: str
    type: QuestionType
    options: list[str] | None
    point_value: int
    sort_order: int
    is_wager: bool
    min_wager: int | None
    max_wager: int | None
    is_scored: bool
    correct_answer: str | None

    model_config = {"from_attributes": True}


class AnswerSubmit(BaseModel):
    answer: str = Field(..., min_length=1)
    wager_amount: int | None = Field(None, ge=0)


class AnswerResponse(BaseModel):
    id: int
    league_question_id: int
    team_id: int
    answer: str
    wager_amount: int | None
    points_earned: int | None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class EpisodeQuestionItem(BaseModel):
    id: int
    text: str
    type: QuestionType
    options: list[str] | None
    point_value: int
    is_scored: bool
    correct_answer: str | None
    is_wager: bool
    min_wager: int | None
    max_wager: int | None
    my_answer: str | None
    my_wager_amount: int | None
    points_earned: int | None


class EpisodeQuestionsResponse(BaseModel):
    episode_number: int
    deadline: datetime | None
    can_submit: bool
    episode_state: EpisodeState
    questions: list[EpisodeQuestionItem]


# --- Results ---

class ResultAnswerItem(BaseModel):
    team_id: int
    team_name: str
    answer: str
    wager_amount: int | None
    points_earned: int | None
    is_current_user: bool


class ResultQuestionItem(BaseModel):
    id: int
    text: str
    type: QuestionType
    options: list[str] | None
    point_value: int
    is_wager: bool
    is_scored: bool
    correct_answer: str | None
    answers: list[ResultAnswerItem]


class EpisodeLeaderboardItem(BaseModel):
    rank: int
    team_id: int
    team_name: str
    points: int
    is_current_user: bool


class EpisodeResultsResponse(BaseModel):
    episode_number: int
    episode_title: str | None
    air_date: datetime | None
    deadline_passed: bool
    is_fully_scored: bool
    questions: list[ResultQuestionItem]
    leaderboard: list[EpisodeLeaderboardItem]
