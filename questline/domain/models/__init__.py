"""
Domain models package for Questline.

Frozen value objects validated on construction. Services convert between
these and the JSON documents held by the store.
"""

from .base import DomainValidationError
from .badge import BadgeDefinition, BadgeRequirement, BadgeStats, Rarity, RequirementType
from .challenge import (
    CHALLENGE_TYPES,
    ChallengeCompletion,
    ChallengeRequirement,
    ChallengeRewards,
    ChallengeStatus,
    ChallengeType,
    DailyChallenge,
    RequirementTarget,
)
from .progression import CompletedQuest, UserProgressionState
from .quest import (
    Difficulty,
    QuestAttempt,
    QuestDefinition,
    QuestStep,
    StepAnswer,
    StepType,
)

__all__ = [
    "DomainValidationError",
    # Badges
    "BadgeDefinition",
    "BadgeRequirement",
    "BadgeStats",
    "Rarity",
    "RequirementType",
    # Daily challenges
    "CHALLENGE_TYPES",
    "ChallengeCompletion",
    "ChallengeRequirement",
    "ChallengeRewards",
    "ChallengeStatus",
    "ChallengeType",
    "DailyChallenge",
    "RequirementTarget",
    # Progression
    "CompletedQuest",
    "UserProgressionState",
    # Quests
    "Difficulty",
    "QuestAttempt",
    "QuestDefinition",
    "QuestStep",
    "StepAnswer",
    "StepType",
]
