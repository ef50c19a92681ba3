"""
Badge catalog value objects.

Purpose
-------
`BadgeDefinition` rows loaded once from the static badge catalog and the
`BadgeStats` snapshot the evaluator checks them against.

Requirement types form a closed enum. Catalog rows naming a type the engine
does not know load as `RequirementType.UNKNOWN`, which always evaluates
false; they are never silently skipped or auto-awarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from questline.domain.models.base import validate_non_negative, validate_not_empty


class RequirementType(Enum):
    QUESTS_COMPLETED = "quests_completed"
    STREAK = "streak"
    XP = "xp"
    PROFILE_COMPLETE = "profile_complete"
    PREMIUM = "premium"
    PREMIUM_MONTHS = "premium_months"
    CATEGORY_COMPLETE = "category_complete"
    SPECIAL = "special"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "RequirementType":
        try:
            member = cls(str(value))
        except ValueError:
            return cls.UNKNOWN
        return member


class Rarity(Enum):
    COMMON = "common"
    RARE = "rare"


@dataclass(frozen=True)
class BadgeRequirement:
    type: RequirementType
    value: Any
    raw_type: Optional[str] = None


@dataclass(frozen=True)
class BadgeDefinition:
    """
    One badge in the static catalog.

    Attributes
    ----------
    id : str
        Unique badge id (localized names are resolved elsewhere by id)
    category : str
        Display grouping (progress, streak, mastery, ...)
    requirement : BadgeRequirement
        Rule that unlocks the badge
    rarity : Rarity
        common or rare
    xp : int
        XP value shown for the badge; not credited to the user's total
    """

    id: str
    category: str
    requirement: BadgeRequirement
    rarity: Rarity = Rarity.COMMON
    xp: int = 0

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_non_negative(self.xp, "xp")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "BadgeDefinition":
        requirement = doc.get("requirement") or {}
        raw_type = requirement.get("type")
        if "rarity" in doc:
            rarity = Rarity(str(doc["rarity"]).lower())
        else:
            rarity = Rarity.RARE if doc.get("rare") else Rarity.COMMON
        return cls(
            id=str(doc.get("id", "")),
            category=str(doc.get("category", "general")),
            requirement=BadgeRequirement(
                type=RequirementType.parse(raw_type),
                value=requirement.get("value"),
                raw_type=None if raw_type is None else str(raw_type),
            ),
            rarity=rarity,
            xp=int(doc.get("xp", 0)),
        )


@dataclass(frozen=True)
class BadgeStats:
    """Snapshot of the user statistics badge requirements are checked against."""

    quests_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_xp: int = 0
    profile_complete: bool = False
    is_premium: bool = False
    premium_months: int = 0
    completed_categories: frozenset[str] = field(default_factory=frozenset)
    special_flags: frozenset[str] = field(default_factory=frozenset)
