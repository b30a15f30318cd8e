from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from league_scoring.core.database import get_db
from league_scoring.schemas.standings import StandingsResponse, DetailedStandingsResponse
from league_scoring.api.deps import Identity, get_current_user
from league_scoring.services.standings import get_standings, get_detailed_standings

router = APIRouter(prefix="/api/league-seasons/{league_season_id}", tags=["Standings"])


@router.get("/standings", response_model=StandingsResponse)
async def standings(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    return await get_standings(db, league_season_id, current_user.owner_id)


@router.get("/standings/detailed", response_model=DetailedStandingsResponse)
async def detailed_standings(
    league_season_id: int,
    episode: int | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    return await get_detailed_standings(db, league_season_id, current_user.owner_id, episode)
