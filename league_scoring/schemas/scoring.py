from pydantic import BaseModel, Field


class CorrectAnswerInput(BaseModel):
    question_id: int
    correct_answer: str = Field(..., min_length=1)


class ScoreQuestionsRequest(BaseModel):
    answers: list[CorrectAnswerInput] = Field(..., min_length=1)


class ScoreQuestionsResponse(BaseModel):
    scored_count: int
    teams_recalculated: int


class TeamRecalculateRequest(BaseModel):
    max_episode: int | None = Field(None, ge=0)  # Defaults to the ledger horizon


class TeamRecalculateResponse(BaseModel):
    team_id: int
    episodes_recalculated: int
    final_total: int


class LeagueRecalculateResponse(BaseModel):
    teams_recalculated: int
    episodes: int
    failed_team_ids: list[int] = []


class RetentionEpisodeInput(BaseModel):
    episode_number: int = Field(..., gt=0)
    points_per_castaway: int = Field(..., ge=0)


class RetentionConfigUpdate(BaseModel):
    episodes: list[RetentionEpisodeInput]


class RetentionConfigResponse(BaseModel):
    episode_number: int
    points_per_castaway: int

    model_config = {"from_attributes": True}
