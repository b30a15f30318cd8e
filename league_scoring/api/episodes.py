from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from league_scoring.core.database import get_db
from league_scoring.models.models import Team
from league_scoring.schemas.episodes import (
    EpisodeStateResponse, ComputedEpisodeState, LeagueEpisodeStatesResponse,
)
from league_scoring.schemas.questions import EpisodeResultsResponse
from league_scoring.api.deps import Identity, get_current_user, get_viewer_team
from league_scoring.services.episode_state import (
    get_episode_state, get_league_episode_states, get_current_episode_state,
)
from league_scoring.services.questions import get_episode_results

router = APIRouter(prefix="/api/league-seasons/{league_season_id}/episodes", tags=["Episodes"])


@router.get("/states", response_model=LeagueEpisodeStatesResponse)
async def league_episode_states(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    return await get_league_episode_states(db, league_season_id, current_user.is_commissioner)


@router.get("/current", response_model=ComputedEpisodeState)
async def current_episode_state(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    state = await get_current_episode_state(db, league_season_id, current_user.is_commissioner)
    if state is None:
        raise HTTPException(status_code=404, detail="Season has no episodes")
    return state


@router.get("/{episode_number}/state", response_model=EpisodeStateResponse)
async def episode_state(
    league_season_id: int,
    episode_number: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_current_user),
):
    state = await get_episode_state(db, league_season_id, episode_number)
    return EpisodeStateResponse(
        league_season_id=league_season_id,
        episode_number=episode_number,
        state=state,
    )


@router.get("/{episode_number}/results", response_model=EpisodeResultsResponse)
async def episode_results(
    league_season_id: int,
    episode_number: int,
    db: AsyncSession = Depends(get_db),
    team: Team | None = Depends(get_viewer_team),
):
    return await get_episode_results(db, league_season_id, episode_number, team)
