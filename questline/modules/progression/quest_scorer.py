"""
Quest Scorer

Purpose
-------
Pure scoring of one quest attempt: per-step points, hint penalty, difficulty
and premium multipliers, and the time bonus.

Responsibilities
----------------
- Award points for each correctly completed step
- Apply the hint penalty before multipliers, floored at 0
- Apply difficulty and premium multipliers with half-up rounding
- Add the (non-multiplied) time bonus
- Compute the maximum achievable base score for a quest

Non-Responsibilities
--------------------
- Reading config (ProgressionService passes `ScoringRules` in)
- Persisting outcomes or awarding XP

Formula
-------
    step_sum     = Σ points of correct steps
    base_score   = round_half_up(max(0, step_sum - hints × hint_penalty)
                                 × difficulty_multiplier × premium_multiplier)
    time_bonus   = fast_bonus   if elapsed ≤ fast_ratio × duration
                   on_time_bonus if elapsed ≤ duration
                   0 otherwise
    final_score  = base_score + time_bonus

Example
-------
    Medium quest, one correct quiz step, premium user, slow completion:
        round(50 × 1.2 × 1.5) + 0 = 90
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

from questline.domain.models.quest import (
    Difficulty,
    QuestAttempt,
    QuestDefinition,
    QuestStep,
    StepAnswer,
    StepType,
)
from questline.modules.shared.exceptions import InvalidInputError

MIN_CHALLENGE_TEXT_LENGTH = 10


@dataclass(frozen=True)
class ScoringRules:
    """
    Tunable scoring constants, normally built from the `scoring` config tree.
    """

    step_points: Mapping[StepType, int] = field(
        default_factory=lambda: {StepType.QUIZ: 50, StepType.CHECKLIST: 30, StepType.CHALLENGE: 20}
    )
    difficulty_multipliers: Mapping[Difficulty, float] = field(
        default_factory=lambda: {Difficulty.EASY: 1.0, Difficulty.MEDIUM: 1.2, Difficulty.HARD: 1.5}
    )
    premium_multiplier: float = 1.5
    hint_penalty: int = 10
    fast_ratio: float = 0.7
    fast_bonus: int = 50
    on_time_bonus: int = 20
    min_challenge_text_length: int = MIN_CHALLENGE_TEXT_LENGTH

    @classmethod
    def from_config(cls, scoring: Optional[Mapping[str, Any]]) -> "ScoringRules":
        """
        Build rules from a `scoring` config mapping, keeping defaults for
        anything missing.

        Expected shape:
            points: {quiz, checklist, challenge}
            multipliers: {difficulty: {Easy, Medium, Hard}, premium}
            hint_penalty, time_bonus: {fast_ratio, fast, on_time},
            challenge_min_text_length
        """
        defaults = cls()
        if not scoring:
            return defaults

        points = dict(defaults.step_points)
        for key, value in (scoring.get("points") or {}).items():
            points[StepType(str(key).lower())] = int(value)

        multipliers = scoring.get("multipliers") or {}
        difficulty = dict(defaults.difficulty_multipliers)
        for key, value in (multipliers.get("difficulty") or {}).items():
            difficulty[Difficulty.parse(key)] = float(value)

        time_bonus = scoring.get("time_bonus") or {}
        return cls(
            step_points=points,
            difficulty_multipliers=difficulty,
            premium_multiplier=float(multipliers.get("premium", defaults.premium_multiplier)),
            hint_penalty=int(scoring.get("hint_penalty", defaults.hint_penalty)),
            fast_ratio=float(time_bonus.get("fast_ratio", defaults.fast_ratio)),
            fast_bonus=int(time_bonus.get("fast", defaults.fast_bonus)),
            on_time_bonus=int(time_bonus.get("on_time", defaults.on_time_bonus)),
            min_challenge_text_length=int(
                scoring.get("challenge_min_text_length", defaults.min_challenge_text_length)
            ),
        )


DEFAULT_SCORING_RULES = ScoringRules()


@dataclass(frozen=True)
class QuestScore:
    step_points: tuple[int, ...]
    base_score: int
    time_bonus: int
    hint_penalty: int
    final_score: int
    max_possible_score: int
    is_perfect: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "stepPoints": list(self.step_points),
            "baseScore": self.base_score,
            "timeBonus": self.time_bonus,
            "hintPenalty": self.hint_penalty,
            "finalScore": self.final_score,
            "maxPossibleScore": self.max_possible_score,
            "isPerfect": self.is_perfect,
        }


def round_half_up(value: Decimal) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Example:
        >>> round_half_up(Decimal("112.5"))
        113
    """
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def step_score(step: QuestStep, answer: Optional[StepAnswer], rules: ScoringRules = DEFAULT_SCORING_RULES) -> int:
    """
    Points earned on one step.

    A step scores only when the answer is marked completed and is correct for
    its type: quiz picks the correct option, checklist ticks every item,
    challenge text is longer than the minimum length.
    """
    if answer is None or not answer.completed:
        return 0

    points = rules.step_points.get(step.type, 0)
    if step.type is StepType.QUIZ:
        return points if answer.selected_index == step.correct_index else 0
    if step.type is StepType.CHECKLIST:
        return points if answer.checked_count == step.item_count else 0
    if step.type is StepType.CHALLENGE:
        return points if len(answer.text or "") > rules.min_challenge_text_length else 0
    return 0


def _apply_multipliers(points: int, difficulty: Difficulty, is_premium: bool, rules: ScoringRules) -> int:
    multiplier = Decimal(str(rules.difficulty_multipliers.get(difficulty, 1.0)))
    if is_premium:
        multiplier *= Decimal(str(rules.premium_multiplier))
    return round_half_up(Decimal(points) * multiplier)


def calculate_time_bonus(
    elapsed_seconds: float,
    duration_seconds: float,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> int:
    """
    Non-multiplied bonus for finishing early.

    Example:
        >>> calculate_time_bonus(400, 600)
        50
        >>> calculate_time_bonus(500, 600)
        20
        >>> calculate_time_bonus(601, 600)
        0
    """
    if elapsed_seconds <= rules.fast_ratio * duration_seconds:
        return rules.fast_bonus
    if elapsed_seconds <= duration_seconds:
        return rules.on_time_bonus
    return 0


def max_possible_score(
    quest: QuestDefinition,
    is_premium: bool,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> int:
    """Base score with every step correct and no hints; excludes time bonus."""
    step_sum = sum(rules.step_points.get(step.type, 0) for step in quest.steps)
    return _apply_multipliers(step_sum, quest.difficulty, is_premium, rules)


def score_attempt(
    quest: QuestDefinition,
    attempt: QuestAttempt,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> QuestScore:
    """
    Score one attempt at `quest`.

    Args:
        quest: Quest metadata from the catalog
        attempt: Caller-resolved answers, elapsed time, entitlement and hints
        rules: Scoring constants

    Returns:
        QuestScore with the per-step breakdown and totals

    Raises:
        InvalidInputError: If the attempt has more answers than the quest
            has steps

    Example:
        >>> score_attempt(medium_one_quiz, QuestAttempt(answers=(correct,),
        ...               elapsed_seconds=900, is_premium=True)).final_score
        90
    """
    if len(attempt.answers) > len(quest.steps):
        raise InvalidInputError(
            "answers",
            f"{len(attempt.answers)} answers for {len(quest.steps)} steps in quest '{quest.id}'",
        )

    answers: list[Optional[StepAnswer]] = list(attempt.answers)
    answers.extend([None] * (len(quest.steps) - len(answers)))

    points = tuple(step_score(step, answer, rules) for step, answer in zip(quest.steps, answers))
    step_sum = sum(points)
    penalty = min(step_sum, attempt.hints_used * rules.hint_penalty)

    base_score = _apply_multipliers(step_sum - penalty, quest.difficulty, attempt.is_premium, rules)
    time_bonus = calculate_time_bonus(attempt.elapsed_seconds, quest.duration_seconds, rules)
    max_score = max_possible_score(quest, attempt.is_premium, rules)

    return QuestScore(
        step_points=points,
        base_score=base_score,
        time_bonus=time_bonus,
        hint_penalty=penalty,
        final_score=base_score + time_bonus,
        max_possible_score=max_score,
        is_perfect=bool(quest.steps) and base_score == max_score,
    )
