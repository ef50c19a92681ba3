"""
User progression aggregate.

Purpose
-------
`UserProgressionState` is the explicit value passed into the pure rule
modules and returned as a new value; ProgressionService owns the only
mutable reference, inside a single atomic store update.

Invariants
----------
- `badges` never contains duplicates and keeps first-award order.
- `level` is never stored on the state; it is recomputed from `xp` whenever
  the document is written.
- `completed_quests` holds one entry per quest id; re-submission overwrites.

Document shape
--------------
{xp, level, streak, longestStreak, lastLoginDay, badges: [..],
 completedQuests: {questId: {score, completedAt, timeBonus, ...}},
 dailyChallengesCompleted, lastDailyChallenge, processedAttempts: [..],
 profileComplete, isPremium, premiumMonths}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from questline.domain.models.base import (
    DomainValidationError,
    day_to_str,
    instant_to_str,
    str_to_day,
    str_to_instant,
    validate_non_negative,
)


@dataclass(frozen=True)
class CompletedQuest:
    """Outcome of the latest submission of one quest."""

    score: int
    completed_at: datetime
    time_bonus: int = 0
    hints_used: int = 0
    time_spent_seconds: int = 0
    category: Optional[str] = None
    perfect: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "completedAt": instant_to_str(self.completed_at),
            "timeBonus": self.time_bonus,
            "hintsUsed": self.hints_used,
            "timeSpent": self.time_spent_seconds,
            "category": self.category,
            "perfect": self.perfect,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "CompletedQuest":
        return cls(
            score=int(doc.get("score", 0)),
            completed_at=str_to_instant(doc["completedAt"]),
            time_bonus=int(doc.get("timeBonus", 0)),
            hints_used=int(doc.get("hintsUsed", 0)),
            time_spent_seconds=int(doc.get("timeSpent", 0)),
            category=doc.get("category"),
            perfect=bool(doc.get("perfect", False)),
        )


@dataclass(frozen=True)
class UserProgressionState:
    """
    Immutable snapshot of one user's progression record.

    Attributes
    ----------
    xp : int
        Accumulated experience, never negative
    streak : int
        Consecutive calendar days with a login
    longest_streak : int
        Best streak ever reached
    last_login_day : Optional[date]
        Calendar day of the last streak-counting login
    badges : tuple[str, ...]
        Earned badge ids in award order
    completed_quests : Mapping[str, CompletedQuest]
        Latest outcome per quest id
    daily_challenges_completed : int
        Count of completed daily challenges
    last_daily_challenge : Optional[date]
        Day of the most recent completed daily challenge
    processed_attempts : tuple[str, ...]
        Recently applied attempt ids (idempotency window)
    profile_complete, is_premium, premium_months
        Mirrored user-profile facts used by badge rules
    """

    xp: int = 0
    streak: int = 0
    longest_streak: int = 0
    last_login_day: Optional[date] = None
    badges: tuple[str, ...] = ()
    completed_quests: Mapping[str, CompletedQuest] = field(default_factory=dict)
    daily_challenges_completed: int = 0
    last_daily_challenge: Optional[date] = None
    processed_attempts: tuple[str, ...] = ()
    profile_complete: bool = False
    is_premium: bool = False
    premium_months: int = 0

    def __post_init__(self) -> None:
        validate_non_negative(self.xp, "xp")
        validate_non_negative(self.streak, "streak")
        validate_non_negative(self.longest_streak, "longest_streak")
        validate_non_negative(self.daily_challenges_completed, "daily_challenges_completed")
        validate_non_negative(self.premium_months, "premium_months")
        if len(set(self.badges)) != len(self.badges):
            raise DomainValidationError("badges must be unique", field="badges")

    @property
    def quests_completed(self) -> int:
        return len(self.completed_quests)

    def with_changes(self, **changes: Any) -> "UserProgressionState":
        return replace(self, **changes)

    def with_completed_quest(self, quest_id: str, outcome: CompletedQuest) -> "UserProgressionState":
        quests = dict(self.completed_quests)
        quests[quest_id] = outcome
        return replace(self, completed_quests=quests)

    def with_processed_attempt(self, attempt_id: str, window: int) -> "UserProgressionState":
        attempts = tuple(a for a in self.processed_attempts if a != attempt_id) + (attempt_id,)
        return replace(self, processed_attempts=attempts[-window:] if window > 0 else ())

    # ------------------------------------------------------------------ #
    # Documents
    # ------------------------------------------------------------------ #

    def to_document(self, level: str) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "level": level,
            "streak": self.streak,
            "longestStreak": self.longest_streak,
            "lastLoginDay": day_to_str(self.last_login_day),
            "badges": list(self.badges),
            "completedQuests": {
                quest_id: outcome.to_document()
                for quest_id, outcome in self.completed_quests.items()
            },
            "dailyChallengesCompleted": self.daily_challenges_completed,
            "lastDailyChallenge": day_to_str(self.last_daily_challenge),
            "processedAttempts": list(self.processed_attempts),
            "profileComplete": self.profile_complete,
            "isPremium": self.is_premium,
            "premiumMonths": self.premium_months,
        }

    @classmethod
    def from_document(cls, doc: Optional[Mapping[str, Any]]) -> "UserProgressionState":
        """
        Rebuild a state from a stored document; `None` yields a fresh user.

        Stored badges are de-duplicated on read, and an unparsable
        `lastLoginDay` is treated as absent.
        """
        if not doc:
            return cls()

        return cls(
            xp=max(0, int(doc.get("xp", 0))),
            streak=max(0, int(doc.get("streak", 0))),
            longest_streak=max(0, int(doc.get("longestStreak", 0))),
            last_login_day=str_to_day(doc.get("lastLoginDay")),
            badges=tuple(_unique(doc.get("badges") or ())),
            completed_quests={
                str(quest_id): CompletedQuest.from_document(outcome)
                for quest_id, outcome in (doc.get("completedQuests") or {}).items()
            },
            daily_challenges_completed=max(0, int(doc.get("dailyChallengesCompleted", 0))),
            last_daily_challenge=str_to_day(doc.get("lastDailyChallenge")),
            processed_attempts=tuple(doc.get("processedAttempts") or ()),
            profile_complete=bool(doc.get("profileComplete", False)),
            is_premium=bool(doc.get("isPremium", False)),
            premium_months=max(0, int(doc.get("premiumMonths", 0))),
        )


def _unique(values: Iterable[Any]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        key = str(value)
        if key not in seen:
            seen.add(key)
            ordered.append(key)
    return ordered
