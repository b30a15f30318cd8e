import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from league_scoring.core.database import get_db
from league_scoring.schemas.scoring import (
    ScoreQuestionsRequest, ScoreQuestionsResponse,
    TeamRecalculateRequest, TeamRecalculateResponse, LeagueRecalculateResponse,
    RetentionConfigUpdate, RetentionConfigResponse,
)
from league_scoring.api.deps import Identity, get_current_user, require_commissioner
from league_scoring.services.questions import score_questions
from league_scoring.services.recalculation import (
    get_ledger_horizon, recalculate_team_history, recalculate_all_episode_points,
)
from league_scoring.services.retention import get_retention_config, update_retention_config
from league_scoring.services.lookups import (
    get_league_season_or_raise, get_team_or_raise,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/league-seasons/{league_season_id}", tags=["Scoring"])


@router.post("/score", response_model=ScoreQuestionsResponse)
async def score(
    league_season_id: int,
    body: ScoreQuestionsRequest,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    return await score_questions(
        db, league_season_id, [a.model_dump() for a in body.answers]
    )


@router.post("/recalculate", response_model=LeagueRecalculateResponse)
async def recalculate_league(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    return await recalculate_all_episode_points(db, league_season_id)


@router.post("/teams/{team_id}/recalculate", response_model=TeamRecalculateResponse)
async def recalculate_team(
    league_season_id: int,
    team_id: int,
    body: TeamRecalculateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await get_league_season_or_raise(db, league_season_id)
    team = await get_team_or_raise(db, team_id)
    if team.league_season_id != league_season_id:
        raise HTTPException(status_code=404, detail="Team not found")

    horizon = await get_ledger_horizon(db, league_season_id)
    max_episode = body.max_episode if body else None
    if max_episode is None:
        max_episode = horizon
    elif max_episode < horizon:
        # Stopping short would drop scored episodes from the team's total
        raise HTTPException(
            status_code=400,
            detail=f"max_episode cannot be below episode {horizon}, the last scored or active episode",
        )
    return await recalculate_team_history(db, team_id, max_episode)


@router.get("/retention", response_model=list[RetentionConfigResponse])
async def retention_config(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(get_current_user),
):
    await get_league_season_or_raise(db, league_season_id)
    return await get_retention_config(db, league_season_id)


@router.put("/retention", response_model=list[RetentionConfigResponse])
async def set_retention_config(
    league_season_id: int,
    body: RetentionConfigUpdate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await get_league_season_or_raise(db, league_season_id)
    configs = await update_retention_config(
        db, league_season_id, [e.model_dump() for e in body.episodes]
    )
    logger.info("Retention config updated for league season %s; ledger not yet recalculated", league_season_id)
    return configs
