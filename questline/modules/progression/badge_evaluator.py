"""
Badge Evaluator

Purpose
-------
Pure badge rules: decide which catalog badges a user has newly earned, merge
them into the earned set without duplicates, and report progress toward the
next ones.

Design Notes
------------
- Requirement dispatch is a table keyed by the closed `RequirementType`
  enum. The module refuses to import if a member has no rule, so adding a
  requirement type forces a decision here.
- `RequirementType.UNKNOWN` always evaluates false (never auto-award).
- Results follow catalog-definition order, not recency or value.
- Callers must merge with `merge_badges` (ordered set-union), never append.
- `build_badge_stats` derives the evaluator's input from a progression
  state; thresholds for the special flags are passed in by the caller.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Callable, Iterable, Mapping, Sequence

from questline.domain.models.badge import BadgeDefinition, BadgeStats, RequirementType
from questline.domain.models.progression import UserProgressionState


def _as_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("inf")


_RULES: dict[RequirementType, Callable[[BadgeStats, Any], bool]] = {
    RequirementType.QUESTS_COMPLETED: lambda s, v: s.quests_completed >= _as_number(v),
    RequirementType.STREAK: lambda s, v: max(s.current_streak, s.longest_streak) >= _as_number(v),
    RequirementType.XP: lambda s, v: s.total_xp >= _as_number(v),
    RequirementType.PROFILE_COMPLETE: lambda s, v: s.profile_complete is bool(v),
    RequirementType.PREMIUM: lambda s, v: s.is_premium is bool(v),
    RequirementType.PREMIUM_MONTHS: lambda s, v: s.premium_months >= _as_number(v),
    RequirementType.CATEGORY_COMPLETE: lambda s, v: v in s.completed_categories,
    RequirementType.SPECIAL: lambda s, v: v in s.special_flags,
    RequirementType.UNKNOWN: lambda s, v: False,
}

_missing_rules = set(RequirementType) - set(_RULES)
if _missing_rules:
    raise RuntimeError(f"Badge rules missing for requirement types: {sorted(m.value for m in _missing_rules)}")


def requirement_met(badge: BadgeDefinition, stats: BadgeStats) -> bool:
    """
    Evaluate one badge requirement against the stats.

    Example:
        >>> requirement_met(ten_quests_badge, BadgeStats(quests_completed=10))
        True
    """
    return bool(_RULES[badge.requirement.type](stats, badge.requirement.value))


def evaluate_badges(
    stats: BadgeStats,
    earned_badge_ids: Iterable[str],
    catalog: Sequence[BadgeDefinition],
) -> list[str]:
    """
    Return ids of badges newly earned, in catalog order.

    Never returns an id already present in `earned_badge_ids`, so running
    it repeatedly on the same stats is harmless.

    Args:
        stats: Current user statistics
        earned_badge_ids: Badges the user already holds
        catalog: Ordered static badge catalog

    Returns:
        Newly earned badge ids
    """
    earned = set(earned_badge_ids)
    newly_earned: list[str] = []
    for badge in catalog:
        if badge.id in earned or badge.id in newly_earned:
            continue
        if requirement_met(badge, stats):
            newly_earned.append(badge.id)
    return newly_earned


def merge_badges(earned: Sequence[str], new_ids: Iterable[str]) -> tuple[str, ...]:
    """
    Ordered set-union: existing order kept, unseen ids appended once.

    Example:
        >>> merge_badges(("first_quest",), ["first_quest", "ten_quests"])
        ('first_quest', 'ten_quests')
    """
    merged = list(dict.fromkeys(earned))
    seen = set(merged)
    for badge_id in new_ids:
        if badge_id not in seen:
            seen.add(badge_id)
            merged.append(badge_id)
    return tuple(merged)


# ============================================================================
# PROGRESS & SUMMARY
# ============================================================================


@dataclass(frozen=True)
class BadgeProgress:
    badge_id: str
    requirement_type: RequirementType
    current: int
    target: int
    progress: float


_PROGRESS_SOURCES: dict[RequirementType, Callable[[BadgeStats], int]] = {
    RequirementType.QUESTS_COMPLETED: lambda s: s.quests_completed,
    RequirementType.STREAK: lambda s: max(s.current_streak, s.longest_streak),
    RequirementType.XP: lambda s: s.total_xp,
}


def next_badges(
    stats: BadgeStats,
    earned_badge_ids: Iterable[str],
    catalog: Sequence[BadgeDefinition],
    limit: int = 3,
) -> list[BadgeProgress]:
    """
    Unearned counter badges the user is partway toward, closest first.

    Only quests_completed, streak and xp badges report progress; badges at
    0% or already reached are skipped.
    """
    earned = set(earned_badge_ids)
    candidates: list[BadgeProgress] = []

    for badge in catalog:
        source = _PROGRESS_SOURCES.get(badge.requirement.type)
        if source is None or badge.id in earned:
            continue
        target = _as_number(badge.requirement.value)
        if target <= 0 or target == float("inf"):
            continue
        current = source(stats)
        progress = current / target * 100
        if 0 < progress < 100:
            candidates.append(
                BadgeProgress(
                    badge_id=badge.id,
                    requirement_type=badge.requirement.type,
                    current=current,
                    target=int(target),
                    progress=round(progress, 2),
                )
            )

    # stable sort keeps catalog order among equal progress
    candidates.sort(key=lambda item: item.progress, reverse=True)
    return candidates[: max(0, limit)]


def calculate_badge_xp(earned_badge_ids: Iterable[str], catalog: Sequence[BadgeDefinition]) -> int:
    by_id = {badge.id: badge for badge in catalog}
    return sum(by_id[badge_id].xp for badge_id in set(earned_badge_ids) if badge_id in by_id)


def badge_stats(earned_badge_ids: Iterable[str], catalog: Sequence[BadgeDefinition]) -> dict[str, Any]:
    """Totals for a badge shelf: earned counts overall and per category."""
    earned = set(earned_badge_ids)
    by_category: dict[str, dict[str, int]] = {}
    for badge in catalog:
        bucket = by_category.setdefault(badge.category, {"total": 0, "earned": 0})
        bucket["total"] += 1
        if badge.id in earned:
            bucket["earned"] += 1

    earned_in_catalog = sum(bucket["earned"] for bucket in by_category.values())
    total = len(catalog)
    return {
        "total": total,
        "earned": earned_in_catalog,
        "percentage": round(earned_in_catalog / total * 100) if total else 0,
        "rare_earned": sum(1 for b in catalog if b.id in earned and b.rarity.value == "rare"),
        "total_xp": calculate_badge_xp(earned, catalog),
        "by_category": by_category,
    }


# ============================================================================
# STATS DERIVATION
# ============================================================================


def completed_categories(
    completed_quest_ids: Iterable[str],
    quests_by_category: Mapping[str, Iterable[str]],
) -> frozenset[str]:
    """Categories whose every catalog quest has been completed."""
    done = set(completed_quest_ids)
    return frozenset(
        category
        for category, quest_ids in quests_by_category.items()
        if (ids := set(quest_ids)) and ids <= done
    )


def special_flags(
    state: UserProgressionState,
    tz: tzinfo,
    thresholds: Mapping[str, int],
) -> frozenset[str]:
    """
    Derive special achievement flags from completed quests.

    - early_bird: quests completed before 08:00 local time
    - night_owl: quests completed at or after 22:00 local time
    - speed_demon: quests completed on a single local day
    - perfectionist: quests finished with a perfect score

    Each flag fires once its count reaches `thresholds[flag]`.
    """
    outcomes = list(state.completed_quests.values())
    local_times = [outcome.completed_at.astimezone(tz) for outcome in outcomes]
    per_day = Counter(moment.date() for moment in local_times)

    counts = {
        "early_bird": sum(1 for moment in local_times if moment.hour < 8),
        "night_owl": sum(1 for moment in local_times if moment.hour >= 22),
        "speed_demon": max(per_day.values(), default=0),
        "perfectionist": sum(1 for outcome in outcomes if outcome.perfect),
    }
    return frozenset(
        flag for flag, count in counts.items() if count >= int(thresholds.get(flag, 1)) > 0
    )


def build_badge_stats(
    state: UserProgressionState,
    quests_by_category: Mapping[str, Iterable[str]],
    tz: tzinfo,
    special_thresholds: Mapping[str, int],
) -> BadgeStats:
    return BadgeStats(
        quests_completed=state.quests_completed,
        current_streak=state.streak,
        longest_streak=state.longest_streak,
        total_xp=state.xp,
        profile_complete=state.profile_complete,
        is_premium=state.is_premium,
        premium_months=state.premium_months,
        completed_categories=completed_categories(state.completed_quests.keys(), quests_by_category),
        special_flags=special_flags(state, tz, special_thresholds),
    )
