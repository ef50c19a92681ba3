"""
Quest metadata value objects.

Purpose
-------
Immutable representations of the quest catalog records the engine consumes
(`QuestDefinition`, `QuestStep`) and of a user's attempt at a quest
(`QuestAttempt`, `StepAnswer`).

The engine is content-agnostic: no titles, copy or translations appear here,
only the fields scoring and selection need.

Document shape (external quest catalog)
---------------------------------------
{id, category, difficulty, durationMinutes, xp, isPremium,
 steps: [{type, optionCount?, correctIndex?, itemCount?}]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from questline.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)

DEFAULT_DURATION_MINUTES = 10


class Difficulty(Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: Any) -> "Difficulty":
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        raise DomainValidationError(f"Unknown difficulty '{value}'", field="difficulty")


class StepType(Enum):
    QUIZ = "quiz"
    CHECKLIST = "checklist"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class QuestStep:
    """
    One scored unit within a quest.

    Attributes
    ----------
    type : StepType
        quiz, checklist or challenge
    option_count : Optional[int]
        Number of answer options (quiz only)
    correct_index : Optional[int]
        Index of the correct option (quiz only)
    item_count : Optional[int]
        Number of checklist items (checklist only)
    """

    type: StepType
    option_count: Optional[int] = None
    correct_index: Optional[int] = None
    item_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.type is StepType.QUIZ:
            if self.option_count is None or self.correct_index is None:
                raise DomainValidationError(
                    "quiz steps require option_count and correct_index", field="steps"
                )
            validate_positive(self.option_count, "option_count")
            if not 0 <= self.correct_index < self.option_count:
                raise DomainValidationError(
                    f"correct_index {self.correct_index} outside 0..{self.option_count - 1}",
                    field="correct_index",
                )
        elif self.type is StepType.CHECKLIST:
            if self.item_count is None:
                raise DomainValidationError("checklist steps require item_count", field="steps")
            validate_positive(self.item_count, "item_count")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "QuestStep":
        try:
            step_type = StepType(str(doc.get("type", "")).lower())
        except ValueError as exc:
            raise DomainValidationError(
                f"Unknown step type '{doc.get('type')}'", field="steps"
            ) from exc
        return cls(
            type=step_type,
            option_count=doc.get("optionCount"),
            correct_index=doc.get("correctIndex"),
            item_count=doc.get("itemCount"),
        )


@dataclass(frozen=True)
class QuestDefinition:
    """
    Immutable quest metadata owned by the external quest catalog.

    Attributes
    ----------
    id : str
        Stable quest id
    category : str
        Content category (budgeting, saving, ...)
    difficulty : Difficulty
        Drives the score multiplier
    duration_minutes : int
        Expected completion time, used for the time bonus
    xp : int
        Nominal XP value (doubled for daily challenges)
    is_premium : bool
        Restricted to premium users
    steps : tuple[QuestStep, ...]
        Ordered scored steps
    """

    id: str
    category: str
    difficulty: Difficulty
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    xp: int = 0
    is_premium: bool = False
    steps: tuple[QuestStep, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.category, "category")
        validate_positive(self.duration_minutes, "duration_minutes")
        validate_non_negative(self.xp, "xp")

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "QuestDefinition":
        return cls(
            id=str(doc.get("id", "")),
            category=str(doc.get("category", "")),
            difficulty=Difficulty.parse(doc.get("difficulty", "Easy")),
            duration_minutes=int(doc.get("durationMinutes") or DEFAULT_DURATION_MINUTES),
            xp=int(doc.get("xp", 0)),
            is_premium=bool(doc.get("isPremium", False)),
            steps=tuple(QuestStep.from_document(step) for step in doc.get("steps") or ()),
        )

    def to_document(self) -> Dict[str, Any]:
        steps = []
        for step in self.steps:
            entry: Dict[str, Any] = {"type": step.type.value}
            if step.type is StepType.QUIZ:
                entry.update(optionCount=step.option_count, correctIndex=step.correct_index)
            elif step.type is StepType.CHECKLIST:
                entry["itemCount"] = step.item_count
            steps.append(entry)
        return {
            "id": self.id,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "durationMinutes": self.duration_minutes,
            "xp": self.xp,
            "isPremium": self.is_premium,
            "steps": steps,
        }


@dataclass(frozen=True)
class StepAnswer:
    """
    Caller-resolved answer to one step.

    Answer-order shuffling is undone by the caller; `selected_index` refers
    to the catalog's option order.
    """

    completed: bool = False
    selected_index: Optional[int] = None
    checked_count: Optional[int] = None
    text: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "StepAnswer":
        return cls(
            completed=bool(doc.get("completed", False)),
            selected_index=doc.get("selectedIndex"),
            checked_count=doc.get("checkedCount"),
            text=doc.get("text"),
        )


@dataclass(frozen=True)
class QuestAttempt:
    """
    One submission of a quest.

    Attributes
    ----------
    answers : tuple[StepAnswer, ...]
        Positional answers; missing trailing answers count as not completed
    elapsed_seconds : float
        Time spent on the quest
    is_premium : bool
        Entitlement at submission time (drives the premium multiplier)
    hints_used : int
        Hints revealed during the attempt
    attempt_id : Optional[str]
        Idempotency key; a replayed id never awards XP twice
    """

    answers: tuple[StepAnswer, ...] = ()
    elapsed_seconds: float = 0.0
    is_premium: bool = False
    hints_used: int = 0
    attempt_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.elapsed_seconds < 0:
            raise DomainValidationError(
                f"elapsed_seconds must be non-negative, got {self.elapsed_seconds}",
                field="elapsed_seconds",
            )
        validate_non_negative(self.hints_used, "hints_used")
        if self.attempt_id is not None:
            validate_not_empty(self.attempt_id, "attempt_id")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "QuestAttempt":
        return cls(
            answers=tuple(StepAnswer.from_document(a) for a in doc.get("answers") or ()),
            elapsed_seconds=float(doc.get("elapsedSeconds", 0.0)),
            is_premium=bool(doc.get("isPremium", False)),
            hints_used=int(doc.get("hintsUsed", 0)),
            attempt_id=doc.get("attemptId"),
        )
