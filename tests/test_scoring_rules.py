import pytest

from league_scoring.core.exceptions import ValidationError
from league_scoring.models.models import LeagueQuestion, PlayerAnswer, QuestionType
from league_scoring.services.questions import (
    answers_match, normalize_answer, points_for_answer,
    validate_question_definition, validate_wager,
)


def _question(**overrides) -> LeagueQuestion:
    fields = dict(
        league_season_id=1, episode_number=1, text="Who wins immunity?",
        type=QuestionType.FILL_IN_THE_BLANK, options=None, point_value=5,
        sort_order=0, is_wager=False, min_wager=None, max_wager=None,
        is_scored=False, correct_answer=None,
    )
    fields.update(overrides)
    return LeagueQuestion(**fields)


def _answer(text: str, wager: int | None = None) -> PlayerAnswer:
    return PlayerAnswer(league_question_id=1, team_id=1, answer=text, wager_amount=wager)


def test_normalize_answer_trims_and_lowercases():
    assert normalize_answer("  Boston Rob ") == "boston rob"
    assert normalize_answer(None) == ""


@pytest.mark.parametrize("submitted,correct,expected", [
    ("boston rob", "Boston Rob", True),
    ("  BOSTON ROB\t", "boston rob", True),
    ("Rob", "Boston Rob", False),
    ("Bostonrob", "Boston Rob", False),
])
def test_answers_match_is_case_and_whitespace_insensitive_only(submitted, correct, expected):
    assert answers_match(submitted, correct) is expected


def test_fixed_question_pays_point_value_or_nothing():
    question = _question(point_value=5)
    assert points_for_answer(question, _answer("Rob"), "rob") == 5
    assert points_for_answer(question, _answer("Parvati"), "rob") == 0


def test_wager_question_wins_or_loses_the_wager():
    question = _question(is_wager=True, min_wager=1, max_wager=10, point_value=1)
    assert points_for_answer(question, _answer("Yes", wager=7), "yes") == 7
    assert points_for_answer(question, _answer("No", wager=7), "yes") == -7


def test_wager_question_without_wager_uses_point_value():
    question = _question(is_wager=True, min_wager=1, max_wager=10, point_value=3)
    assert points_for_answer(question, _answer("Yes"), "Yes") == 3
    assert points_for_answer(question, _answer("No"), "Yes") == 0


def test_wager_bounds_are_inclusive():
    question = _question(is_wager=True, min_wager=2, max_wager=8)
    validate_wager(question, 2)
    validate_wager(question, 8)
    with pytest.raises(ValidationError):
        validate_wager(question, 1)
    with pytest.raises(ValidationError):
        validate_wager(question, 9)


def test_wager_ignored_on_fixed_questions():
    validate_wager(_question(), 1000)


def test_multiple_choice_needs_two_options():
    with pytest.raises(ValidationError):
        validate_question_definition(QuestionType.MULTIPLE_CHOICE, ["Only"], 1, False, None, None)
    validate_question_definition(QuestionType.MULTIPLE_CHOICE, ["Yes", "No"], 1, False, None, None)


def test_inverted_wager_bounds_rejected():
    with pytest.raises(ValidationError):
        validate_question_definition(QuestionType.FILL_IN_THE_BLANK, None, 1, True, 10, 5)


def test_negative_wager_rejected_even_without_bounds():
    with pytest.raises(ValidationError):
        validate_wager(_question(is_wager=True), -10)
    validate_wager(_question(is_wager=True), 0)


def test_negative_max_wager_rejected():
    with pytest.raises(ValidationError):
        validate_question_definition(QuestionType.FILL_IN_THE_BLANK, None, 1, True, None, -1)
