"""
Unit Tests for the Quest Scorer
===============================

Purpose
-------
Verify step scoring, multipliers, hint penalty, time bonus and the maximum
possible score.

Test Coverage
-------------
- Per-step correctness rules for quiz, checklist and challenge
- Difficulty and premium multipliers with half-up rounding
- Hint penalty floored at zero
- Time bonus boundaries
- final_score - time_bonus never exceeds max_possible_score
- Config-driven rules

Testing Strategy
----------------
- Pure function tests with small quest factories
- AAA pattern (Arrange, Act, Assert)
"""

from decimal import Decimal

import pytest

from questline.domain.models.quest import Difficulty, QuestAttempt, QuestStep, StepAnswer, StepType
from questline.modules.progression.quest_scorer import (
    DEFAULT_SCORING_RULES,
    ScoringRules,
    calculate_time_bonus,
    max_possible_score,
    round_half_up,
    score_attempt,
)
from questline.modules.shared.exceptions import InvalidInputError
from tests.conftest import correct_answers, make_quest

QUIZ = QuestStep(StepType.QUIZ, option_count=4, correct_index=1)
CHECKLIST = QuestStep(StepType.CHECKLIST, item_count=5)
CHALLENGE = QuestStep(StepType.CHALLENGE)


@pytest.mark.unit
@pytest.mark.domain
class TestMultipliers:
    def test_medium_premium_single_quiz_scores_90(self):
        # Arrange
        quest = make_quest(difficulty=Difficulty.MEDIUM, steps=(QUIZ,))
        attempt = QuestAttempt(
            answers=(StepAnswer(completed=True, selected_index=1),),
            elapsed_seconds=quest.duration_seconds + 1,
            is_premium=True,
        )

        # Act
        score = score_attempt(quest, attempt)

        # Assert
        assert score.base_score == 90
        assert score.time_bonus == 0
        assert score.final_score == 90

    def test_half_up_rounding(self):
        quest = make_quest(difficulty=Difficulty.HARD, steps=(QUIZ,))
        attempt = QuestAttempt(
            answers=correct_answers(quest), elapsed_seconds=10_000, is_premium=True
        )

        assert score_attempt(quest, attempt).base_score == 113

    def test_round_half_up_helper(self):
        assert round_half_up(Decimal("0.5")) == 1
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("2.49")) == 2

    def test_easy_free_is_unmultiplied(self):
        quest = make_quest(steps=(QUIZ, CHECKLIST, CHALLENGE))

        score = score_attempt(quest, QuestAttempt(answers=correct_answers(quest), elapsed_seconds=10_000))

        assert score.step_points == (50, 30, 20)
        assert score.base_score == 100


@pytest.mark.unit
@pytest.mark.domain
class TestStepRules:
    def test_wrong_quiz_option_scores_zero(self):
        quest = make_quest(steps=(QUIZ,))
        attempt = QuestAttempt(answers=(StepAnswer(completed=True, selected_index=0),), elapsed_seconds=10_000)

        assert score_attempt(quest, attempt).step_points == (0,)

    def test_uncompleted_step_scores_zero(self):
        quest = make_quest(steps=(QUIZ,))
        attempt = QuestAttempt(answers=(StepAnswer(completed=False, selected_index=1),), elapsed_seconds=10_000)

        assert score_attempt(quest, attempt).base_score == 0

    def test_partial_checklist_scores_zero(self):
        quest = make_quest(steps=(CHECKLIST,))
        attempt = QuestAttempt(answers=(StepAnswer(completed=True, checked_count=4),), elapsed_seconds=10_000)

        assert score_attempt(quest, attempt).step_points == (0,)

    @pytest.mark.parametrize(
        "text, points",
        [("0123456789", 0), ("0123456789A", 20), ("  abcdefghi  ", 20), ("   short", 0), (None, 0)],
    )
    def test_challenge_needs_more_than_ten_characters(self, text, points):
        quest = make_quest(steps=(CHALLENGE,))
        attempt = QuestAttempt(answers=(StepAnswer(completed=True, text=text),), elapsed_seconds=10_000)

        assert score_attempt(quest, attempt).step_points == (points,)

    def test_missing_trailing_answers_count_as_incomplete(self):
        quest = make_quest(steps=(QUIZ, CHECKLIST))
        attempt = QuestAttempt(answers=(StepAnswer(completed=True, selected_index=1),), elapsed_seconds=10_000)

        assert score_attempt(quest, attempt).step_points == (50, 0)

    def test_more_answers_than_steps_rejected(self):
        quest = make_quest(steps=(QUIZ,))
        attempt = QuestAttempt(answers=(StepAnswer(), StepAnswer()), elapsed_seconds=1)

        with pytest.raises(InvalidInputError) as exc_info:
            score_attempt(quest, attempt)

        assert exc_info.value.field == "answers"


@pytest.mark.unit
@pytest.mark.domain
class TestHintPenalty:
    def test_penalty_applied_before_multipliers(self):
        quest = make_quest(difficulty=Difficulty.MEDIUM, steps=(QUIZ,))
        attempt = QuestAttempt(answers=correct_answers(quest), elapsed_seconds=10_000, hints_used=2)

        score = score_attempt(quest, attempt)

        assert score.hint_penalty == 20
        assert score.base_score == 36

    def test_penalty_floored_at_zero(self):
        quest = make_quest(steps=(QUIZ,))
        attempt = QuestAttempt(answers=correct_answers(quest), elapsed_seconds=10_000, hints_used=9)

        score = score_attempt(quest, attempt)

        assert score.hint_penalty == 50
        assert score.base_score == 0

    def test_hints_prevent_perfect(self):
        quest = make_quest(steps=(QUIZ,))
        attempt = QuestAttempt(answers=correct_answers(quest), elapsed_seconds=10_000, hints_used=1)

        assert score_attempt(quest, attempt).is_perfect is False


@pytest.mark.unit
@pytest.mark.domain
class TestTimeBonus:
    @pytest.mark.parametrize(
        "elapsed, bonus",
        [(0, 50), (419, 50), (421, 20), (600, 20), (601, 0)],
    )
    def test_boundaries_for_ten_minute_quest(self, elapsed, bonus):
        assert calculate_time_bonus(elapsed, 600) == bonus

    def test_time_bonus_is_not_multiplied(self):
        quest = make_quest(difficulty=Difficulty.HARD, steps=(QUIZ,))
        attempt = QuestAttempt(answers=correct_answers(quest), elapsed_seconds=60, is_premium=True)

        score = score_attempt(quest, attempt)

        assert score.time_bonus == 50
        assert score.final_score == score.base_score + 50


@pytest.mark.unit
@pytest.mark.domain
class TestMaxPossibleScore:
    def test_max_for_mixed_medium_quest(self):
        quest = make_quest(difficulty=Difficulty.MEDIUM, steps=(QUIZ, CHECKLIST, CHALLENGE))

        assert max_possible_score(quest, is_premium=False) == 120
        assert max_possible_score(quest, is_premium=True) == 180

    def test_perfect_attempt_reaches_max(self):
        quest = make_quest(difficulty=Difficulty.MEDIUM, steps=(QUIZ, CHECKLIST))

        score = score_attempt(quest, QuestAttempt(answers=correct_answers(quest), elapsed_seconds=1))

        assert score.is_perfect is True
        assert score.base_score == score.max_possible_score

    @pytest.mark.parametrize("hints", [0, 1, 3])
    @pytest.mark.parametrize("is_premium", [False, True])
    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_score_without_bonus_never_exceeds_max(self, hints, is_premium, difficulty):
        quest = make_quest(difficulty=difficulty, steps=(QUIZ, CHECKLIST, CHALLENGE))
        attempt = QuestAttempt(
            answers=correct_answers(quest), elapsed_seconds=30, is_premium=is_premium, hints_used=hints
        )

        score = score_attempt(quest, attempt)

        assert score.final_score - score.time_bonus <= score.max_possible_score

    def test_quest_without_steps_is_never_perfect(self):
        quest = make_quest(steps=())

        score = score_attempt(quest, QuestAttempt(elapsed_seconds=1))

        assert score.base_score == 0
        assert score.is_perfect is False


@pytest.mark.unit
@pytest.mark.domain
class TestScoringRulesFromConfig:
    def test_shipped_config_matches_defaults(self, config_manager):
        rules = ScoringRules.from_config(config_manager.get("scoring"))

        assert rules == DEFAULT_SCORING_RULES

    def test_overridden_quiz_points(self):
        rules = ScoringRules.from_config({"points": {"quiz": 80}, "multipliers": {"premium": 2}})
        quest = make_quest(steps=(QUIZ,))

        score = score_attempt(
            quest, QuestAttempt(answers=correct_answers(quest), elapsed_seconds=10_000, is_premium=True), rules
        )

        assert score.base_score == 160

    def test_empty_config_gives_defaults(self):
        assert ScoringRules.from_config(None) == DEFAULT_SCORING_RULES
