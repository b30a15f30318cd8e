from pydantic import BaseModel, Field


class IntervalOpen(BaseModel):
    castaway_id: int
    start_episode: int | None = Field(None, gt=0)  # Defaults to the active episode


class IntervalClose(BaseModel):
    castaway_id: int
    end_episode: int | None = Field(None, ge=0)  # Defaults to active episode - 1


class RosterEntryResponse(BaseModel):
    id: int
    team_id: int
    castaway_id: int
    start_episode: int
    end_episode: int | None
    is_active: bool = False

    model_config = {"from_attributes": True}
