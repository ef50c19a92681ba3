"""
Daily challenge value objects.

Purpose
-------
One `DailyChallenge` exists per (user, calendar day). It is created lazily on
first access, may be rerolled (same record, new id/seed) while active, and
moves to `completed` once its requirements are met.

Requirements are declarative `{description, target, value}` triples checked
against a `ChallengeCompletion` report; they never carry executable code.

Document shape
--------------
{id, date, type, questId, seed, requirements: [{description, target, value}],
 rewards: {xp, streak, badge?}, status, expiresAt, completedAt?}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from questline.domain.models.base import (
    instant_to_str,
    str_to_day,
    str_to_instant,
    validate_non_negative,
    validate_not_empty,
    DomainValidationError,
)


class ChallengeType(Enum):
    QUIZ_MASTER = "quiz_master"
    SPEED_RUNNER = "speed_runner"
    PERFECTIONIST = "perfectionist"
    STREAK_KEEPER = "streak_keeper"
    CATEGORY_EXPLORER = "category_explorer"


# Selection order; the seed indexes into this tuple.
CHALLENGE_TYPES: tuple[ChallengeType, ...] = tuple(ChallengeType)


class ChallengeStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class RequirementTarget(Enum):
    PERFECT_SCORE = "perfect_score"
    COMPLETION_TIME = "completion_time"
    NO_MISTAKES = "no_mistakes"
    MAINTAIN_STREAK = "maintain_streak"
    CATEGORY_COMPLETE = "category_complete"


@dataclass(frozen=True)
class ChallengeRequirement:
    description: str
    target: RequirementTarget
    value: Any

    def to_document(self) -> Dict[str, Any]:
        return {"description": self.description, "target": self.target.value, "value": self.value}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ChallengeRequirement":
        return cls(
            description=str(doc.get("description", "")),
            target=RequirementTarget(doc["target"]),
            value=doc.get("value"),
        )


@dataclass(frozen=True)
class ChallengeRewards:
    xp: int
    streak: int = 1
    badge: Optional[str] = None

    def __post_init__(self) -> None:
        validate_non_negative(self.xp, "xp")

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"xp": self.xp, "streak": self.streak}
        if self.badge:
            doc["badge"] = self.badge
        return doc


@dataclass(frozen=True)
class ChallengeCompletion:
    """
    Outcome report for the quest behind a daily challenge.

    Attributes
    ----------
    score : Optional[int]
        Percentage score of the attempt (100 = perfect)
    duration_seconds : Optional[float]
        Time taken
    mistakes : Optional[int]
        Wrong answers given
    streak_maintained : bool
        Whether the user's streak survived today
    category : Optional[str]
        Category of the completed quest
    completed : bool
        The quest itself was finished
    """

    score: Optional[int] = None
    duration_seconds: Optional[float] = None
    mistakes: Optional[int] = None
    streak_maintained: bool = False
    category: Optional[str] = None
    completed: bool = False


@dataclass(frozen=True)
class DailyChallenge:
    """
    The single daily challenge record for one user and calendar day.

    `persisted` is False for transient challenges returned while the store
    is unavailable; it is not written to documents.
    """

    id: str
    date: date
    type: ChallengeType
    quest_id: str
    seed: int
    requirements: tuple[ChallengeRequirement, ...]
    rewards: ChallengeRewards
    expires_at: datetime
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    completed_at: Optional[datetime] = None
    persisted: bool = field(default=True, compare=False)

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.quest_id, "quest_id")
        if self.expires_at.tzinfo is None:
            raise DomainValidationError("expires_at must be timezone-aware", field="expires_at")

    @property
    def is_active(self) -> bool:
        return self.status is ChallengeStatus.ACTIVE

    def complete(self, at: datetime) -> "DailyChallenge":
        return replace(self, status=ChallengeStatus.COMPLETED, completed_at=at)

    def as_transient(self) -> "DailyChallenge":
        return replace(self, persisted=False)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "questId": self.quest_id,
            "seed": self.seed,
            "requirements": [req.to_document() for req in self.requirements],
            "rewards": self.rewards.to_document(),
            "status": self.status.value,
            "expiresAt": instant_to_str(self.expires_at),
            "completedAt": instant_to_str(self.completed_at) if self.completed_at else None,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "DailyChallenge":
        day = str_to_day(doc.get("date"))
        if day is None:
            raise DomainValidationError(f"Malformed challenge date {doc.get('date')!r}", field="date")
        rewards = doc.get("rewards") or {}
        return cls(
            id=str(doc["id"]),
            date=day,
            type=ChallengeType(doc["type"]),
            quest_id=str(doc["questId"]),
            seed=int(doc.get("seed", 0)),
            requirements=tuple(
                ChallengeRequirement.from_document(req) for req in doc.get("requirements") or ()
            ),
            rewards=ChallengeRewards(
                xp=int(rewards.get("xp", 0)),
                streak=int(rewards.get("streak", 1)),
                badge=rewards.get("badge"),
            ),
            expires_at=str_to_instant(doc["expiresAt"]),
            status=ChallengeStatus(doc.get("status", ChallengeStatus.ACTIVE.value)),
            completed_at=str_to_instant(doc["completedAt"]) if doc.get("completedAt") else None,
        )
