"""
Daily Challenge Generator

Purpose
-------
Pure selection of one quest and challenge type for a user's calendar day,
plus the requirement check run when the challenge is reported complete.

Selection
---------
1. seed: `day_of_year % 365` for the first challenge of a day, or a
   caller-supplied seed plus salt when rerolling.
2. type = CHALLENGE_TYPES[seed % 5]
3. available = quests the user is entitled to, minus `excluded_ids`, minus
   `exclude_quest_id`. Empty falls back to every non-premium quest except
   `exclude_quest_id` (kept only when it is the sole one); still empty
   raises NoChallengeAvailableError.
4. quest = available[seed % len(available)]
5. requirements by type; rewards = quest.xp × 2 (+ badge for perfectionist)

Design Notes
------------
- Same `(day, is_premium, excluded_ids)` always yields the same quest and
  type; randomness only enters through the seed the caller passes in.
- No clock access: `expires_at` is handed to `build_daily_challenge`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from questline.domain.models.challenge import (
    CHALLENGE_TYPES,
    ChallengeCompletion,
    ChallengeRequirement,
    ChallengeRewards,
    ChallengeType,
    DailyChallenge,
    RequirementTarget,
)
from questline.domain.models.quest import QuestDefinition
from questline.modules.shared.exceptions import NoChallengeAvailableError

SEED_MODULUS = 365


@dataclass(frozen=True)
class ChallengeRules:
    """Tunables from the `daily` config tree."""

    perfect_score: int = 100
    speed_runner_seconds: int = 300
    xp_multiplier: int = 2
    streak_reward: int = 1
    perfectionist_badge: str = "daily_perfectionist"

    @classmethod
    def from_config(cls, daily: Optional[Mapping[str, Any]]) -> "ChallengeRules":
        defaults = cls()
        if not daily:
            return defaults
        requirements = daily.get("requirements") or {}
        rewards = daily.get("rewards") or {}
        return cls(
            perfect_score=int(requirements.get("perfect_score", defaults.perfect_score)),
            speed_runner_seconds=int(
                requirements.get("speed_runner_seconds", defaults.speed_runner_seconds)
            ),
            xp_multiplier=int(rewards.get("xp_multiplier", defaults.xp_multiplier)),
            streak_reward=int(rewards.get("streak", defaults.streak_reward)),
            perfectionist_badge=str(rewards.get("perfectionist_badge", defaults.perfectionist_badge)),
        )


DEFAULT_CHALLENGE_RULES = ChallengeRules()


@dataclass(frozen=True)
class ChallengeSelection:
    seed: int
    type: ChallengeType
    quest: QuestDefinition
    requirements: tuple[ChallengeRequirement, ...]
    rewards: ChallengeRewards
    used_fallback: bool = False


# ============================================================================
# SEEDS
# ============================================================================


def daily_seed(day: date) -> int:
    """
    Deterministic seed for the first challenge of `day`.

    Example:
        >>> daily_seed(date(2026, 1, 1))
        1
        >>> daily_seed(date(2024, 12, 31))   # day 366 of a leap year
        1
    """
    return day.timetuple().tm_yday % SEED_MODULUS


def reroll_seed(seed: int, salt: int) -> int:
    """
    Seed for a reroll; `seed` is drawn by the caller, `salt` mixes in the previous one.

    Callers pass a positive `seed` so the result never equals `salt`.
    """
    return seed + salt


# ============================================================================
# SELECTION
# ============================================================================


def challenge_requirements(
    challenge_type: ChallengeType,
    quest: QuestDefinition,
    rules: ChallengeRules = DEFAULT_CHALLENGE_RULES,
) -> tuple[ChallengeRequirement, ...]:
    if challenge_type is ChallengeType.QUIZ_MASTER:
        requirement = ChallengeRequirement(
            "Complete all quiz questions with 100% accuracy",
            RequirementTarget.PERFECT_SCORE,
            rules.perfect_score,
        )
    elif challenge_type is ChallengeType.SPEED_RUNNER:
        minutes = rules.speed_runner_seconds // 60
        requirement = ChallengeRequirement(
            f"Complete the quest in under {minutes} minutes",
            RequirementTarget.COMPLETION_TIME,
            rules.speed_runner_seconds,
        )
    elif challenge_type is ChallengeType.PERFECTIONIST:
        requirement = ChallengeRequirement(
            "Complete all tasks without any mistakes",
            RequirementTarget.NO_MISTAKES,
            0,
        )
    elif challenge_type is ChallengeType.STREAK_KEEPER:
        requirement = ChallengeRequirement(
            "Maintain your streak by completing this quest",
            RequirementTarget.MAINTAIN_STREAK,
            1,
        )
    else:
        requirement = ChallengeRequirement(
            f"Complete a {quest.category} quest",
            RequirementTarget.CATEGORY_COMPLETE,
            quest.category,
        )
    return (requirement,)


def challenge_rewards(
    challenge_type: ChallengeType,
    quest: QuestDefinition,
    rules: ChallengeRules = DEFAULT_CHALLENGE_RULES,
) -> ChallengeRewards:
    badge = rules.perfectionist_badge if challenge_type is ChallengeType.PERFECTIONIST else None
    return ChallengeRewards(xp=quest.xp * rules.xp_multiplier, streak=rules.streak_reward, badge=badge)


def available_quests(
    quests: Sequence[QuestDefinition],
    is_premium: bool,
    excluded_ids: Iterable[str] = (),
    exclude_quest_id: Optional[str] = None,
) -> tuple[list[QuestDefinition], bool]:
    """
    Candidate quests in catalog order, and whether the fallback set was used.

    The fallback is every non-premium quest except `exclude_quest_id`; that
    quest comes back only when it is the sole non-premium quest.
    """
    excluded = set(excluded_ids)
    if exclude_quest_id is not None:
        excluded.add(exclude_quest_id)

    candidates = [
        quest
        for quest in quests
        if (is_premium or not quest.is_premium) and quest.id not in excluded
    ]
    if candidates:
        return candidates, False

    fallback = [quest for quest in quests if not quest.is_premium]
    others = [quest for quest in fallback if quest.id != exclude_quest_id]
    return others or fallback, True


def select_challenge(
    quests: Sequence[QuestDefinition],
    seed: int,
    day: date,
    is_premium: bool = False,
    excluded_ids: Iterable[str] = (),
    exclude_quest_id: Optional[str] = None,
    rules: ChallengeRules = DEFAULT_CHALLENGE_RULES,
) -> ChallengeSelection:
    """
    Pick the challenge type and quest for `seed`.

    Args:
        quests: Quest catalog, in catalog order
        seed: Non-negative selection seed
        day: Calendar day the challenge is for (used in errors only)
        is_premium: Whether premium quests may be selected
        excluded_ids: Quests the user already completed or has active
        exclude_quest_id: Quest to avoid (the one just rerolled away from)
        rules: Requirement and reward tunables

    Raises:
        NoChallengeAvailableError: If no non-premium quest exists at all

    Example:
        >>> select_challenge(catalog, seed=3, day=date(2026, 1, 3)).type
        <ChallengeType.STREAK_KEEPER: 'streak_keeper'>
    """
    seed = abs(int(seed))
    candidates, used_fallback = available_quests(quests, is_premium, excluded_ids, exclude_quest_id)
    if not candidates:
        raise NoChallengeAvailableError(day.isoformat())

    challenge_type = CHALLENGE_TYPES[seed % len(CHALLENGE_TYPES)]
    quest = candidates[seed % len(candidates)]

    return ChallengeSelection(
        seed=seed,
        type=challenge_type,
        quest=quest,
        requirements=challenge_requirements(challenge_type, quest, rules),
        rewards=challenge_rewards(challenge_type, quest, rules),
        used_fallback=used_fallback,
    )


def challenge_id(day: date, seed: int) -> str:
    return f"daily_{day.isoformat()}_{seed}"


def build_daily_challenge(selection: ChallengeSelection, day: date, expires_at: datetime) -> DailyChallenge:
    return DailyChallenge(
        id=challenge_id(day, selection.seed),
        date=day,
        type=selection.type,
        quest_id=selection.quest.id,
        seed=selection.seed,
        requirements=selection.requirements,
        rewards=selection.rewards,
        expires_at=expires_at,
    )


# ============================================================================
# COMPLETION
# ============================================================================


def check_completion(requirement: ChallengeRequirement, completion: ChallengeCompletion) -> bool:
    """
    Whether `completion` satisfies one requirement.

    Missing report fields never satisfy a requirement.
    """
    target = requirement.target
    if target is RequirementTarget.PERFECT_SCORE:
        return completion.score is not None and completion.score >= int(requirement.value)
    if target is RequirementTarget.COMPLETION_TIME:
        return (
            completion.duration_seconds is not None
            and completion.duration_seconds <= float(requirement.value)
        )
    if target is RequirementTarget.NO_MISTAKES:
        return completion.mistakes is not None and completion.mistakes <= int(requirement.value)
    if target is RequirementTarget.MAINTAIN_STREAK:
        return completion.streak_maintained
    if target is RequirementTarget.CATEGORY_COMPLETE:
        return completion.category == requirement.value
    return False


def requirements_met(challenge: DailyChallenge, completion: ChallengeCompletion) -> bool:
    return all(check_completion(requirement, completion) for requirement in challenge.requirements)
