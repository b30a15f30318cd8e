"""
Question scoring engine.

Players answer a league's weekly questions until the episode airs. The
commissioner then supplies the correct answers; every submitted answer is
scored (fixed points or a won/lost wager) and the ledger of every team that
answered is rebuilt. A scored question is frozen: no edit, no delete, no
second scoring pass.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from league_scoring.core.exceptions import NotFoundError, StateError, ValidationError
from league_scoring.models.models import (
    LeagueQuestion, PlayerAnswer, QuestionType, Team,
)
from league_scoring.services.episode_state import (
    EpisodeState, get_episode_state, is_before_deadline, utcnow,
)
from league_scoring.services.lookups import get_episode, get_league_season_or_raise
from league_scoring.services.recalculation import get_ledger_horizon, recalculate_team_history

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "episode_number", "text", "type", "options", "point_value", "sort_order",
    "is_wager", "min_wager", "max_wager",
)
NULLABLE_FIELDS = ("options", "min_wager", "max_wager")


# --- Pure scoring rules ---

def normalize_answer(text: str | None) -> str:
    return (text or "").strip().lower()


def answers_match(submitted: str | None, correct: str | None) -> bool:
    return normalize_answer(submitted) == normalize_answer(correct)


def points_for_answer(question: LeagueQuestion, answer: PlayerAnswer, correct_answer: str) -> int:
    """
    Fixed questions pay point_value or nothing. Wagers pay +wager or cost
    -wager; there is no floor at zero. A wager question answered without a
    wager amount is scored like a fixed question.
    """
    is_correct = answers_match(answer.answer, correct_answer)
    if question.is_wager and answer.wager_amount is not None:
        return answer.wager_amount if is_correct else -answer.wager_amount
    return question.point_value if is_correct else 0


def validate_question_definition(
    question_type: QuestionType,
    options: list[str] | None,
    point_value: int,
    is_wager: bool,
    min_wager: int | None,
    max_wager: int | None,
) -> None:
    if question_type == QuestionType.MULTIPLE_CHOICE and (not options or len(options) < 2):
        raise ValidationError("Multiple choice questions need at least two options")
    if point_value < 0:
        raise ValidationError("point_value cannot be negative")
    if is_wager:
        if min_wager is not None and min_wager < 0:
            raise ValidationError("min_wager cannot be negative")
        if max_wager is not None and max_wager < 0:
            raise ValidationError("max_wager cannot be negative")
        if min_wager is not None and max_wager is not None and min_wager > max_wager:
            raise ValidationError("min_wager cannot exceed max_wager")


def validate_wager(question: LeagueQuestion, wager_amount: int | None) -> None:
    """Bounds are inclusive on both ends. A negative wager is never valid."""
    if not question.is_wager or wager_amount is None:
        return
    if wager_amount < 0:
        raise ValidationError("Wager amount cannot be negative")
    if question.min_wager is not None and wager_amount < question.min_wager:
        raise ValidationError(f"Wager amount must be at least {question.min_wager}")
    if question.max_wager is not None and wager_amount > question.max_wager:
        raise ValidationError(f"Wager amount must not exceed {question.max_wager}")


# --- Question definitions (commissioner) ---

async def get_question_or_raise(db: AsyncSession, question_id: int) -> LeagueQuestion:
    result = await db.execute(select(LeagueQuestion).where(LeagueQuestion.id == question_id))
    question = result.scalar_one_or_none()
    if not question:
        raise NotFoundError(f"League question {question_id} not found")
    return question


async def list_questions(
    db: AsyncSession, league_season_id: int, episode_number: int | None = None
) -> list[LeagueQuestion]:
    query = select(LeagueQuestion).where(LeagueQuestion.league_season_id == league_season_id)
    if episode_number is not None:
        query = query.where(LeagueQuestion.episode_number == episode_number)
    result = await db.execute(
        query.order_by(LeagueQuestion.episode_number, LeagueQuestion.sort_order, LeagueQuestion.id)
    )
    return list(result.scalars().all())


async def create_question(db: AsyncSession, league_season_id: int, data: dict) -> LeagueQuestion:
    await get_league_season_or_raise(db, league_season_id)

    question_type = QuestionType(data["type"])
    is_wager = data.get("is_wager", False)
    point_value = data.get("point_value", 1)
    validate_question_definition(
        question_type, data.get("options"), point_value, is_wager,
        data.get("min_wager"), data.get("max_wager"),
    )

    sort_order = data.get("sort_order")
    if sort_order is None:
        max_result = await db.execute(
            select(func.max(LeagueQuestion.sort_order)).where(
                LeagueQuestion.league_season_id == league_season_id,
                LeagueQuestion.episode_number == data["episode_number"],
            )
        )
        current_max = max_result.scalar_one_or_none()
        sort_order = (current_max if current_max is not None else -1) + 1

    question = LeagueQuestion(
        league_season_id=league_season_id,
        episode_number=data["episode_number"],
        text=data["text"],
        type=question_type,
        options=data.get("options") or None,
        point_value=point_value,
        sort_order=sort_order,
        is_wager=is_wager,
        min_wager=data.get("min_wager") if is_wager else None,
        max_wager=data.get("max_wager") if is_wager else None,
    )
    db.add(question)
    await db.flush()
    await db.refresh(question)
    return question


async def update_question(db: AsyncSession, question_id: int, changes: dict) -> LeagueQuestion:
    question = await get_question_or_raise(db, question_id)
    if question.is_scored:
        raise StateError("Cannot edit a scored question")

    merged = {field: getattr(question, field) for field in EDITABLE_FIELDS}
    merged.update({
        field: value for field, value in changes.items()
        if field in EDITABLE_FIELDS and (value is not None or field in NULLABLE_FIELDS)
    })

    validate_question_definition(
        QuestionType(merged["type"]), merged["options"], merged["point_value"],
        merged["is_wager"], merged["min_wager"], merged["max_wager"],
    )

    for field, value in merged.items():
        setattr(question, field, value)
    await db.flush()
    await db.refresh(question)
    return question


async def delete_question(db: AsyncSession, question_id: int) -> None:
    question = await get_question_or_raise(db, question_id)
    if question.is_scored:
        raise StateError("Cannot delete a scored question")
    await db.delete(question)
    await db.flush()


# --- Answers (players) ---

async def can_submit_answers(
    db: AsyncSession,
    league_season_id: int,
    episode_number: int,
    now: datetime | None = None,
) -> bool:
    """Re-evaluated on every submission; the episode air date is the deadline."""
    now = now or utcnow()
    league_season = await get_league_season_or_raise(db, league_season_id)
    episode = await get_episode(db, league_season.season_id, episode_number)
    if episode is None:
        return True
    return is_before_deadline(episode.air_date, now)


async def submit_answer(
    db: AsyncSession,
    league_season_id: int,
    question_id: int,
    team: Team,
    answer: str,
    wager_amount: int | None = None,
    now: datetime | None = None,
) -> PlayerAnswer:
    """Create or overwrite the team's answer. Last write wins."""
    await get_league_season_or_raise(db, league_season_id)
    question = await get_question_or_raise(db, question_id)

    if question.league_season_id != league_season_id:
        raise ValidationError("Question does not belong to this league season")
    if team.league_season_id != league_season_id:
        raise ValidationError("Team does not belong to this league season")
    if question.is_scored:
        raise StateError("Question has already been scored")

    if not await can_submit_answers(db, league_season_id, question.episode_number, now):
        raise ValidationError("The deadline for submitting answers has passed")

    if question.type == QuestionType.MULTIPLE_CHOICE and question.options:
        if answer not in question.options:
            raise ValidationError("Invalid answer for multiple choice question")

    validate_wager(question, wager_amount)
    stored_wager = wager_amount if question.is_wager else None

    existing_result = await db.execute(
        select(PlayerAnswer).where(
            PlayerAnswer.league_question_id == question_id,
            PlayerAnswer.team_id == team.id,
        )
    )
    player_answer = existing_result.scalar_one_or_none()

    if player_answer:
        player_answer.answer = answer
        player_answer.wager_amount = stored_wager
    else:
        player_answer = PlayerAnswer(
            league_question_id=question_id,
            team_id=team.id,
            answer=answer,
            wager_amount=stored_wager,
        )
        db.add(player_answer)

    await db.flush()
    await db.refresh(player_answer)
    return player_answer


async def get_episode_questions(
    db: AsyncSession,
    league_season_id: int,
    episode_number: int,
    team: Team,
    now: datetime | None = None,
) -> dict:
    """The answer sheet a player sees: questions plus their own answers."""
    now = now or utcnow()
    league_season = await get_league_season_or_raise(db, league_season_id)
    episode = await get_episode(db, league_season.season_id, episode_number)
    questions = await list_questions(db, league_season_id, episode_number)

    answers_result = await db.execute(
        select(PlayerAnswer).where(
            PlayerAnswer.team_id == team.id,
            PlayerAnswer.league_question_id.in_([q.id for q in questions]),
        )
    )
    my_answers = {a.league_question_id: a for a in answers_result.scalars().all()}

    return {
        "episode_number": episode_number,
        "deadline": episode.air_date if episode else None,
        "can_submit": await can_submit_answers(db, league_season_id, episode_number, now),
        "episode_state": await get_episode_state(db, league_season_id, episode_number, now),
        "questions": [
            {
                "id": q.id,
                "text": q.text,
                "type": q.type,
                "options": q.options,
                "point_value": q.point_value,
                "is_scored": q.is_scored,
                "correct_answer": q.correct_answer if q.is_scored else None,
                "is_wager": q.is_wager,
                "min_wager": q.min_wager,
                "max_wager": q.max_wager,
                "my_answer": my_answers[q.id].answer if q.id in my_answers else None,
                "my_wager_amount": my_answers[q.id].wager_amount if q.id in my_answers else None,
                "points_earned": my_answers[q.id].points_earned if q.id in my_answers else None,
            }
            for q in questions
        ],
    }


# --- Scoring (commissioner) ---

async def score_questions(
    db: AsyncSession,
    league_season_id: int,
    correct_answers: list[dict],
    now: datetime | None = None,
) -> dict:
    """
    Score a batch of questions: [{"question_id": ..., "correct_answer": ...}].

    The whole batch is validated before anything is written and runs in one
    savepoint together with the ledger rebuild of every affected team.
    Episodes still in the future or open for submissions cannot be scored.
    """
    await get_league_season_or_raise(db, league_season_id)
    if not correct_answers:
        raise ValidationError("No answers supplied")

    answer_map = {item["question_id"]: item["correct_answer"] for item in correct_answers}
    if len(answer_map) != len(correct_answers):
        raise ValidationError("Each question can only appear once per scoring request")

    # Row locks serialise two commissioners scoring the same questions
    result = await db.execute(
        select(LeagueQuestion)
        .where(
            LeagueQuestion.id.in_(list(answer_map)),
            LeagueQuestion.league_season_id == league_season_id,
        )
        .with_for_update()
    )
    questions = result.scalars().all()

    if len(questions) != len(answer_map):
        raise NotFoundError(
            "One or more question IDs are invalid or do not belong to this league season"
        )
    already_scored = sorted(q.id for q in questions if q.is_scored)
    if already_scored:
        raise StateError(f"Questions already scored: {already_scored}")

    now = now or utcnow()
    for episode_number in sorted({q.episode_number for q in questions}):
        state = await get_episode_state(db, league_season_id, episode_number, now)
        if state in (EpisodeState.FUTURE, EpisodeState.SUBMISSIONS_OPEN):
            raise StateError(
                f"Episode {episode_number} cannot be scored while it is {state.value}"
            )

    async with db.begin_nested():
        answers_result = await db.execute(
            select(PlayerAnswer).where(
                PlayerAnswer.league_question_id.in_([q.id for q in questions])
            )
        )
        answers_by_question = {}
        for player_answer in answers_result.scalars().all():
            answers_by_question.setdefault(player_answer.league_question_id, []).append(player_answer)

        affected_team_ids = set()
        for question in questions:
            correct_answer = answer_map[question.id]
            question.correct_answer = correct_answer
            question.is_scored = True

            for player_answer in answers_by_question.get(question.id, []):
                player_answer.points_earned = points_for_answer(question, player_answer, correct_answer)
                affected_team_ids.add(player_answer.team_id)

        await db.flush()

        # Recalculation is the only writer of Team.total_points
        max_episode = await get_ledger_horizon(db, league_season_id)
        for team_id in sorted(affected_team_ids):
            await recalculate_team_history(db, team_id, max_episode)

    scored_episodes = sorted({q.episode_number for q in questions})
    logger.info(
        "Scored %s questions in league season %s (episodes %s), %s teams recalculated",
        len(questions), league_season_id, scored_episodes, len(affected_team_ids),
    )
    for episode_number in scored_episodes:
        if await is_episode_fully_scored(db, league_season_id, episode_number):
            # Results notifications hang off this event
            logger.info("League season %s episode %s is fully scored", league_season_id, episode_number)

    return {
        "scored_count": len(questions),
        "teams_recalculated": len(affected_team_ids),
    }


async def is_episode_fully_scored(db: AsyncSession, league_season_id: int, episode_number: int) -> bool:
    questions = await list_questions(db, league_season_id, episode_number)
    return bool(questions) and all(q.is_scored for q in questions)


# --- Results (all members) ---

async def get_episode_results(
    db: AsyncSession,
    league_season_id: int,
    episode_number: int,
    viewer_team: Team | None,
    now: datetime | None = None,
) -> dict:
    """
    Questions with answers. Before the deadline only the viewer's own answers
    are visible; afterwards every team's. Correct answers show once scored.
    """
    now = now or utcnow()
    league_season = await get_league_season_or_raise(db, league_season_id)
    episode = await get_episode(db, league_season.season_id, episode_number)
    deadline_passed = not await can_submit_answers(db, league_season_id, episode_number, now)
    viewer_team_id = viewer_team.id if viewer_team else None

    questions = await list_questions(db, league_season_id, episode_number)

    teams_result = await db.execute(select(Team).where(Team.league_season_id == league_season_id))
    teams = {t.id: t for t in teams_result.scalars().all()}

    answers_result = await db.execute(
        select(PlayerAnswer)
        .where(PlayerAnswer.league_question_id.in_([q.id for q in questions]))
        .order_by(PlayerAnswer.team_id)
    )
    answers_by_question = {}
    for player_answer in answers_result.scalars().all():
        answers_by_question.setdefault(player_answer.league_question_id, []).append(player_answer)

    formatted_questions = []
    team_scores = {}
    for q in questions:
        all_answers = answers_by_question.get(q.id, [])
        if deadline_passed:
            visible = all_answers
        else:
            visible = [a for a in all_answers if a.team_id == viewer_team_id]

        formatted_questions.append({
            "id": q.id,
            "text": q.text,
            "type": q.type,
            "options": q.options,
            "point_value": q.point_value,
            "is_wager": q.is_wager,
            "is_scored": q.is_scored,
            "correct_answer": q.correct_answer if q.is_scored else None,
            "answers": [
                {
                    "team_id": a.team_id,
                    "team_name": teams[a.team_id].name,
                    "answer": a.answer,
                    "wager_amount": a.wager_amount,
                    "points_earned": a.points_earned,
                    "is_current_user": a.team_id == viewer_team_id,
                }
                for a in visible
            ],
        })

        if q.is_scored:
            for a in all_answers:
                team_scores[a.team_id] = team_scores.get(a.team_id, 0) + (a.points_earned or 0)

    ranked = sorted(team_scores.items(), key=lambda item: item[1], reverse=True)
    leaderboard = [
        {
            "rank": index,
            "team_id": team_id,
            "team_name": teams[team_id].name,
            "points": points,
            "is_current_user": team_id == viewer_team_id,
        }
        for index, (team_id, points) in enumerate(ranked, 1)
    ]

    return {
        "episode_number": episode_number,
        "episode_title": episode.title if episode else None,
        "air_date": episode.air_date if episode else None,
        "deadline_passed": deadline_passed,
        "is_fully_scored": bool(questions) and all(q.is_scored for q in questions),
        "questions": formatted_questions,
        "leaderboard": leaderboard,
    }
