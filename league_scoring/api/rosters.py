from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from league_scoring.core.database import get_db
from league_scoring.models.models import Team, TeamCastaway
from league_scoring.schemas.rosters import IntervalOpen, IntervalClose, RosterEntryResponse
from league_scoring.api.deps import Identity, get_current_user, require_commissioner
from league_scoring.services.lookups import get_team_or_raise
from league_scoring.services.roster import (
    get_membership_intervals, open_interval, close_interval,
)

router = APIRouter(prefix="/api/league-seasons/{league_season_id}/teams/{team_id}/roster", tags=["Rosters"])


async def _get_team_or_404(db: AsyncSession, league_season_id: int, team_id: int) -> Team:
    team = await get_team_or_raise(db, team_id)
    if team.league_season_id != league_season_id:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


def _build_roster_response(entry: TeamCastaway) -> RosterEntryResponse:
    return RosterEntryResponse(
        id=entry.id,
        team_id=entry.team_id,
        castaway_id=entry.castaway_id,
        start_episode=entry.start_episode,
        end_episode=entry.end_episode,
        is_active=entry.end_episode is None,
    )


@router.get("", response_model=list[RosterEntryResponse])
async def roster_history(
    league_season_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_current_user),
):
    await _get_team_or_404(db, league_season_id, team_id)
    return [_build_roster_response(e) for e in await get_membership_intervals(db, team_id)]


@router.post("/open", response_model=RosterEntryResponse, status_code=201)
async def open_roster_interval(
    league_season_id: int,
    team_id: int,
    body: IntervalOpen,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await _get_team_or_404(db, league_season_id, team_id)
    entry = await open_interval(db, team_id, body.castaway_id, body.start_episode)
    return _build_roster_response(entry)


@router.post("/close", response_model=RosterEntryResponse)
async def close_roster_interval(
    league_season_id: int,
    team_id: int,
    body: IntervalClose,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await _get_team_or_404(db, league_season_id, team_id)
    entry = await close_interval(db, team_id, body.castaway_id, body.end_episode)
    return _build_roster_response(entry)
