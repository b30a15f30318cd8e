from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from league_scoring.core.database import get_db
from league_scoring.models.models import LeagueQuestion, Team
from league_scoring.schemas.questions import (
    QuestionCreate, QuestionUpdate, QuestionResponse,
    AnswerSubmit, AnswerResponse, EpisodeQuestionsResponse,
)
from league_scoring.api.deps import Identity, require_commissioner, require_team
from league_scoring.services import questions as question_service
from league_scoring.services.lookups import get_league_season_or_raise

router = APIRouter(prefix="/api/league-seasons/{league_season_id}/questions", tags=["Questions"])


async def _get_question_or_404(
    db: AsyncSession, league_season_id: int, question_id: int
) -> LeagueQuestion:
    question = await question_service.get_question_or_raise(db, question_id)
    if question.league_season_id != league_season_id:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.post("", response_model=QuestionResponse, status_code=201)
async def create_question(
    league_season_id: int,
    body: QuestionCreate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    return await question_service.create_question(db, league_season_id, body.model_dump())


@router.get("", response_model=list[QuestionResponse])
async def list_questions(
    league_season_id: int,
    episode_number: int | None = None,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    # Exposes correct answers and every definition, so commissioner only
    await get_league_season_or_raise(db, league_season_id)
    return await question_service.list_questions(db, league_season_id, episode_number)


@router.patch("/{question_id}", response_model=QuestionResponse)
async def update_question(
    league_season_id: int,
    question_id: int,
    body: QuestionUpdate,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await _get_question_or_404(db, league_season_id, question_id)
    return await question_service.update_question(
        db, question_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{question_id}", status_code=204)
async def delete_question(
    league_season_id: int,
    question_id: int,
    db: AsyncSession = Depends(get_db),
    _: Identity = Depends(require_commissioner),
):
    await _get_question_or_404(db, league_season_id, question_id)
    await question_service.delete_question(db, question_id)


@router.put("/{question_id}/answer", response_model=AnswerResponse)
async def submit_answer(
    league_season_id: int,
    question_id: int,
    body: AnswerSubmit,
    db: AsyncSession = Depends(get_db),
    team: Team = Depends(require_team),
):
    return await question_service.submit_answer(
        db, league_season_id, question_id, team, body.answer, body.wager_amount
    )


@router.get("/episodes/{episode_number}", response_model=EpisodeQuestionsResponse)
async def my_episode_questions(
    league_season_id: int,
    episode_number: int,
    db: AsyncSession = Depends(get_db),
    team: Team = Depends(require_team),
):
    return await question_service.get_episode_questions(db, league_season_id, episode_number, team)
