"""
Progression Service

Purpose
-------
Turn login and quest-submission events into persisted progression changes:
streak, XP, level, completed quests and badges.

Domain
------
- Apply the streak rules on login
- Score quest attempts and credit XP
- Derive badge stats and merge newly earned badges
- Credit XP awarded by other modules (daily challenges)
- Report progress summaries

Design Notes
------------
- Every mutation is one `DocumentStore.update_atomic` call whose update
  function is pure: read document → pure rules → new document. Concurrent
  sessions for the same user therefore never lose a badge or double-count
  an XP or streak increment.
- The update function may run more than once (optimistic retries), so it
  records its outcome into a fresh `_Outcome` each time and the last run
  wins.
- `attempt_id` makes quest submission idempotent: replayed ids come back
  as `duplicate=True` without touching XP.
- Store failures degrade: the rules run against the last state this
  process saw for the user (or a fresh state), the result comes back with
  `persisted=False`, and no events are published.
- Level is never stored independently; it is recomputed from XP on every
  write.

Configuration Keys
------------------
- progression.levels                  : level threshold table
- progression.idempotency_window      : int (default 50)
- progression.fallback_cache_size     : int (default 1024)
- badges.special.*                    : special-flag thresholds
- scoring.*                           : see quest_scorer.ScoringRules

Events
------
- progression.streak_updated
- progression.quest_completed
- progression.xp_awarded
- progression.level_up
- progression.badge_unlocked
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from questline.core.exceptions import StoreConflictError, StoreUnavailableError
from questline.core.logging.logger import LogContext
from questline.core.store.base import Document, progression_key
from questline.domain.models.base import DomainValidationError
from questline.domain.models.progression import CompletedQuest, UserProgressionState
from questline.domain.models.quest import QuestAttempt
from questline.modules.progression.badge_evaluator import (
    badge_stats,
    build_badge_stats,
    evaluate_badges,
    merge_badges,
    next_badges,
)
from questline.modules.progression.level_calculator import (
    DEFAULT_LEVEL_THRESHOLDS,
    LevelTable,
    build_threshold_table,
    get_level,
    level_rank,
    progress_to_next,
)
from questline.modules.progression.quest_scorer import QuestScore, ScoringRules, score_attempt
from questline.modules.progression.streak_tracker import StreakRule, next_streak
from questline.modules.shared.base_service import BaseService
from questline.modules.shared.exceptions import InvalidInputError, NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.clock import Clock
    from questline.core.config.manager import ConfigManager
    from questline.core.event.bus import EventBus
    from questline.core.store.base import DocumentStore
    from questline.modules.catalog.badge_catalog import BadgeCatalog
    from questline.modules.catalog.quest_catalog import QuestCatalog


DEFAULT_SPECIAL_THRESHOLDS: Dict[str, int] = {
    "early_bird": 5,
    "night_owl": 5,
    "speed_demon": 3,
    "perfectionist": 10,
}


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class LoginResult:
    streak: int
    longest_streak: int
    changed: bool
    rule: StreakRule
    level: str
    new_badges: tuple[str, ...] = ()
    persisted: bool = True


@dataclass(frozen=True)
class SubmitResult:
    quest_id: str
    score: QuestScore
    xp: int
    xp_gained: int
    previous_level: str
    new_level: str
    new_badges: tuple[str, ...] = ()
    persisted: bool = True
    duplicate: bool = False

    @property
    def leveled_up(self) -> bool:
        return self.new_level != self.previous_level


@dataclass
class _Outcome:
    """Scratch record written by an update function; reset on every run."""

    before: UserProgressionState = field(default_factory=UserProgressionState)
    after: UserProgressionState = field(default_factory=UserProgressionState)
    new_badges: tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# ProgressionService
# ============================================================================


class ProgressionService(BaseService):
    """
    Orchestrates the pure progression rules against the document store.

    Public Methods
    --------------
    - on_login() -> Apply the streak rules for today
    - on_quest_submit() -> Score an attempt, credit XP, award badges
    - award_xp() -> Credit XP from another module
    - set_profile_flags() -> Mirror profile/premium facts and re-check badges
    - get_progress_summary() -> Level progress, streak and badge overview
    - get_state() -> Current progression state
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        store: DocumentStore,
        quest_catalog: QuestCatalog,
        badge_catalog: BadgeCatalog,
        clock: Clock,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._quests = quest_catalog
        self._badges = badge_catalog
        self._clock = clock
        self._last_known: OrderedDict[str, UserProgressionState] = OrderedDict()

    # ========================================================================
    # Config
    # ========================================================================

    def _level_table(self) -> LevelTable:
        raw = self.get_config("progression.levels")
        return build_threshold_table(raw) if raw else DEFAULT_LEVEL_THRESHOLDS

    def _scoring_rules(self) -> ScoringRules:
        return ScoringRules.from_config(self.get_config("scoring"))

    def _special_thresholds(self) -> Dict[str, int]:
        configured = self.get_config("badges.special") or {}
        return {**DEFAULT_SPECIAL_THRESHOLDS, **{k: int(v) for k, v in configured.items()}}

    def _idempotency_window(self) -> int:
        return int(self.get_config("progression.idempotency_window", 50))

    # ========================================================================
    # State helpers
    # ========================================================================

    @staticmethod
    def _load_state(user_id: str, doc: Optional[Document]) -> UserProgressionState:
        try:
            return UserProgressionState.from_document(doc)
        except (DomainValidationError, KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(
                "progression", f"stored progression for '{user_id}' is malformed: {exc}"
            ) from exc

    def _remember(self, user_id: str, state: UserProgressionState) -> None:
        self._last_known[user_id] = state
        self._last_known.move_to_end(user_id)
        limit = int(self.get_config("progression.fallback_cache_size", 1024))
        while len(self._last_known) > limit:
            self._last_known.popitem(last=False)

    def _fallback_document(self, user_id: str, table: LevelTable) -> Optional[Document]:
        state = self._last_known.get(user_id)
        if state is None:
            return None
        return state.to_document(get_level(state.xp, table))

    def _award_badges(
        self, state: UserProgressionState
    ) -> tuple[UserProgressionState, tuple[str, ...]]:
        stats = build_badge_stats(
            state,
            self._quests.quest_ids_by_category(),
            self._clock.tz,
            self._special_thresholds(),
        )
        earned = evaluate_badges(stats, state.badges, self._badges.badges)
        if not earned:
            return state, ()
        return state.with_changes(badges=merge_badges(state.badges, earned)), tuple(earned)

    async def _mutate(
        self,
        user_id: str,
        operation: str,
        table: LevelTable,
        apply: Callable[[UserProgressionState, _Outcome], Optional[UserProgressionState]],
    ) -> tuple[_Outcome, bool]:
        """
        Run `apply` inside one atomic store update.

        `apply` returns the new state, or None for "nothing to write". On
        store failure it is run once more against the last known state and
        the outcome is returned unpersisted.
        """
        outcome = _Outcome()

        def update(doc: Optional[Document]) -> Optional[Document]:
            nonlocal outcome
            outcome = _Outcome()
            state = self._load_state(user_id, doc)
            outcome.before = state
            new_state = apply(state, outcome)
            outcome.after = new_state if new_state is not None else state
            if new_state is None:
                return None
            return new_state.to_document(get_level(new_state.xp, table))

        try:
            await self._store.update_atomic(progression_key(user_id), update)
        except (StoreUnavailableError, StoreConflictError) as exc:
            self.log_degraded(operation, exc, user_id=user_id)
            update(self._fallback_document(user_id, table))
            self._remember(user_id, outcome.after)
            return outcome, False

        self._remember(user_id, outcome.after)
        return outcome, True

    async def _publish_awards(
        self,
        user_id: str,
        before: UserProgressionState,
        after: UserProgressionState,
        new_badges: tuple[str, ...],
        table: LevelTable,
    ) -> None:
        previous_level = get_level(before.xp, table)
        new_level = get_level(after.xp, table)
        if level_rank(new_level, table) > level_rank(previous_level, table):
            await self.emit_event(
                "progression.level_up",
                {
                    "user_id": user_id,
                    "previous_level": previous_level,
                    "new_level": new_level,
                    "xp": after.xp,
                },
            )
        for badge_id in new_badges:
            badge = self._badges.find_badge(badge_id)
            await self.emit_event(
                "progression.badge_unlocked",
                {
                    "user_id": user_id,
                    "badge_id": badge_id,
                    "category": badge.category if badge else None,
                    "rarity": badge.rarity.value if badge else None,
                },
            )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def on_login(self, user_id: str) -> LoginResult:
        """
        Apply the daily streak rules for a login now.

        Same-day logins write nothing. Otherwise streak, longest streak,
        last login day and any newly earned streak badges are written in one
        atomic update.

        Args:
            user_id: User identifier

        Returns:
            LoginResult with the streak after this login

        Raises:
            InvalidInputError: If user_id is empty

        Example:
            >>> result = await service.on_login("u-42")
            >>> result.streak, result.rule
            (5, <StreakRule.CONTINUED: 'continued'>)
        """
        user_id = self.validate_user_id(user_id)
        today = self._clock.today()
        table = self._level_table()

        async with LogContext(user_id=user_id, trigger="login", component="progression", operation="on_login"):

            def apply(state: UserProgressionState, out: _Outcome) -> Optional[UserProgressionState]:
                update = next_streak(state.last_login_day, today, state.streak)
                out.extra["update"] = update
                if not update.changed:
                    return None
                new_state = state.with_changes(
                    streak=update.streak,
                    longest_streak=max(state.longest_streak, update.streak),
                    last_login_day=today,
                )
                new_state, out.new_badges = self._award_badges(new_state)
                return new_state

            outcome, persisted = await self._mutate(user_id, "on_login", table, apply)
            update = outcome.extra["update"]
            after = outcome.after

            self.log_operation(
                "on_login",
                user_id=user_id,
                day=today.isoformat(),
                streak=after.streak,
                rule=update.rule.value,
                new_badges=list(outcome.new_badges),
                persisted=persisted,
            )

            if persisted and update.changed:
                await self.emit_event(
                    "progression.streak_updated",
                    {
                        "user_id": user_id,
                        "streak": after.streak,
                        "longest_streak": after.longest_streak,
                        "rule": update.rule.value,
                        "day": today.isoformat(),
                    },
                )
                await self._publish_awards(user_id, outcome.before, after, outcome.new_badges, table)

            return LoginResult(
                streak=after.streak,
                longest_streak=after.longest_streak,
                changed=update.changed,
                rule=update.rule,
                level=get_level(after.xp, table),
                new_badges=outcome.new_badges,
                persisted=persisted,
            )

    async def on_quest_submit(self, user_id: str, quest_id: str, attempt: QuestAttempt) -> SubmitResult:
        """
        Score a quest attempt and apply its rewards.

        XP grows by the attempt's final score; the quest's completion record
        is overwritten; badges are re-evaluated and merged. All of it lands in
        a single atomic update.

        Args:
            user_id: User identifier
            quest_id: Catalog id of the submitted quest
            attempt: Resolved answers, elapsed time, entitlement, hints

        Returns:
            SubmitResult with score breakdown, levels and new badges

        Raises:
            InvalidInputError: Empty user id, unknown quest, or an attempt
                that does not fit the quest
        """
        user_id = self.validate_user_id(user_id)
        try:
            quest = self._quests.get_quest(quest_id)
        except NotFoundError as exc:
            raise InvalidInputError("quest_id", f"unknown quest '{quest_id}'") from exc

        score = score_attempt(quest, attempt, self._scoring_rules())
        completed_at = self._clock.now().astimezone(timezone.utc)
        table = self._level_table()
        window = self._idempotency_window()

        async with LogContext(
            user_id=user_id, trigger="quest_submit", component="progression", operation="on_quest_submit"
        ):

            def apply(state: UserProgressionState, out: _Outcome) -> Optional[UserProgressionState]:
                if attempt.attempt_id is not None and attempt.attempt_id in state.processed_attempts:
                    out.extra["duplicate"] = True
                    return None
                out.extra["duplicate"] = False

                record = CompletedQuest(
                    score=score.final_score,
                    completed_at=completed_at,
                    time_bonus=score.time_bonus,
                    hints_used=attempt.hints_used,
                    time_spent_seconds=int(attempt.elapsed_seconds),
                    category=quest.category,
                    perfect=score.is_perfect,
                )
                new_state = state.with_completed_quest(quest.id, record).with_changes(
                    xp=state.xp + score.final_score
                )
                if attempt.attempt_id is not None:
                    new_state = new_state.with_processed_attempt(attempt.attempt_id, window)
                new_state, out.new_badges = self._award_badges(new_state)
                return new_state

            outcome, persisted = await self._mutate(user_id, "on_quest_submit", table, apply)
            duplicate = bool(outcome.extra.get("duplicate"))
            before, after = outcome.before, outcome.after

            self.log_operation(
                "on_quest_submit",
                user_id=user_id,
                quest_id=quest.id,
                final_score=score.final_score,
                xp=after.xp,
                new_badges=list(outcome.new_badges),
                persisted=persisted,
                duplicate=duplicate,
            )

            if persisted and not duplicate:
                await self.emit_event(
                    "progression.quest_completed",
                    {
                        "user_id": user_id,
                        "quest_id": quest.id,
                        "category": quest.category,
                        "final_score": score.final_score,
                        "is_perfect": score.is_perfect,
                        "xp": after.xp,
                    },
                )
                await self._publish_awards(user_id, before, after, outcome.new_badges, table)

            return SubmitResult(
                quest_id=quest.id,
                score=score,
                xp=after.xp,
                xp_gained=0 if duplicate else score.final_score,
                previous_level=get_level(before.xp, table),
                new_level=get_level(after.xp, table),
                new_badges=outcome.new_badges,
                persisted=persisted,
                duplicate=duplicate,
            )

    async def award_xp(
        self,
        user_id: str,
        amount: int,
        reason: str,
        *,
        badge: Optional[str] = None,
        daily_challenge_day: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Atomically credit `amount` XP.

        When `daily_challenge_day` is given the daily-challenge counter is
        incremented and the day recorded; `badge` is merged into the user's
        badges (daily challenge badges live outside the static catalog).

        Returns:
            Dict with xp, xp_awarded, previous_level, new_level, leveled_up,
            new_badges and persisted
        """
        user_id = self.validate_user_id(user_id)
        amount = self.validate_non_negative_int(amount, "amount")
        table = self._level_table()

        async with LogContext(user_id=user_id, trigger=reason, component="progression", operation="award_xp"):

            def apply(state: UserProgressionState, out: _Outcome) -> Optional[UserProgressionState]:
                changes: Dict[str, Any] = {"xp": state.xp + amount}
                if daily_challenge_day is not None:
                    changes["daily_challenges_completed"] = state.daily_challenges_completed + 1
                    changes["last_daily_challenge"] = daily_challenge_day
                new_state = state.with_changes(**changes)

                granted: tuple[str, ...] = ()
                if badge and badge not in new_state.badges:
                    new_state = new_state.with_changes(badges=merge_badges(new_state.badges, [badge]))
                    granted = (badge,)
                new_state, earned = self._award_badges(new_state)
                out.new_badges = granted + earned
                return new_state

            outcome, persisted = await self._mutate(user_id, "award_xp", table, apply)
            before, after = outcome.before, outcome.after
            previous_level = get_level(before.xp, table)
            new_level = get_level(after.xp, table)

            self.log_operation(
                "award_xp",
                user_id=user_id,
                amount=amount,
                reason=reason,
                xp=after.xp,
                persisted=persisted,
            )

            if persisted:
                await self.emit_event(
                    "progression.xp_awarded",
                    {"user_id": user_id, "amount": amount, "reason": reason, "xp": after.xp},
                )
                await self._publish_awards(user_id, before, after, outcome.new_badges, table)

            return {
                "user_id": user_id,
                "xp": after.xp,
                "xp_awarded": amount,
                "previous_level": previous_level,
                "new_level": new_level,
                "leveled_up": new_level != previous_level,
                "new_badges": list(outcome.new_badges),
                "daily_challenges_completed": after.daily_challenges_completed,
                "persisted": persisted,
            }

    async def set_profile_flags(
        self,
        user_id: str,
        *,
        profile_complete: Optional[bool] = None,
        is_premium: Optional[bool] = None,
        premium_months: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Mirror user-profile facts onto the progression record and re-check
        the profile and premium badges. Arguments left as None are unchanged.
        """
        user_id = self.validate_user_id(user_id)
        if premium_months is not None:
            premium_months = self.validate_non_negative_int(premium_months, "premium_months")
        table = self._level_table()

        async with LogContext(
            user_id=user_id, trigger="profile_update", component="progression", operation="set_profile_flags"
        ):

            def apply(state: UserProgressionState, out: _Outcome) -> Optional[UserProgressionState]:
                changes: Dict[str, Any] = {}
                if profile_complete is not None:
                    changes["profile_complete"] = bool(profile_complete)
                if is_premium is not None:
                    changes["is_premium"] = bool(is_premium)
                if premium_months is not None:
                    changes["premium_months"] = premium_months
                new_state, out.new_badges = self._award_badges(state.with_changes(**changes))
                return new_state if new_state != state else None

            outcome, persisted = await self._mutate(user_id, "set_profile_flags", table, apply)

            self.log_operation(
                "set_profile_flags",
                user_id=user_id,
                new_badges=list(outcome.new_badges),
                persisted=persisted,
            )
            if persisted:
                await self._publish_awards(user_id, outcome.before, outcome.after, outcome.new_badges, table)

            return {
                "user_id": user_id,
                "profile_complete": outcome.after.profile_complete,
                "is_premium": outcome.after.is_premium,
                "premium_months": outcome.after.premium_months,
                "new_badges": list(outcome.new_badges),
                "persisted": persisted,
            }

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_state(self, user_id: str) -> tuple[UserProgressionState, bool]:
        """
        Current progression state and whether it came from the store.

        On store failure the last state seen by this process (or a fresh
        state) is returned with `False`.
        """
        user_id = self.validate_user_id(user_id)
        try:
            doc = await self._store.get(progression_key(user_id))
        except StoreUnavailableError as exc:
            self.log_degraded("get_state", exc, user_id=user_id)
            return self._last_known.get(user_id, UserProgressionState()), False
        state = self._load_state(user_id, doc)
        self._remember(user_id, state)
        return state, True

    async def get_progress_summary(self, user_id: str) -> Dict[str, Any]:
        """
        Level progress, streak, badges and next-badge hints for a user.

        Returns:
            Dict containing:
                - xp, level, level_progress (percentage, thresholds, xp_to_next)
                - streak, longest_streak
                - badges, next_badges, badge_stats
                - quests_completed, daily_challenges_completed
                - persisted (False when served from the in-process fallback)
        """
        state, persisted = await self.get_state(user_id)
        table = self._level_table()
        progress = progress_to_next(state.xp, table)
        stats = build_badge_stats(
            state,
            self._quests.quest_ids_by_category(),
            self._clock.tz,
            self._special_thresholds(),
        )

        return {
            "user_id": user_id,
            "xp": state.xp,
            "level": progress.level,
            "level_progress": {
                "percentage": progress.percentage,
                "current_threshold": progress.current_threshold,
                "next_threshold": progress.next_threshold,
                "is_max_level": progress.is_max_level,
                "xp_to_next": progress.xp_to_next,
            },
            "streak": state.streak,
            "longest_streak": state.longest_streak,
            "badges": list(state.badges),
            "next_badges": [
                {
                    "badge_id": item.badge_id,
                    "progress": item.progress,
                    "current": item.current,
                    "target": item.target,
                }
                for item in next_badges(stats, state.badges, self._badges.badges)
            ],
            "badge_stats": badge_stats(state.badges, self._badges.badges),
            "quests_completed": state.quests_completed,
            "daily_challenges_completed": state.daily_challenges_completed,
            "persisted": persisted,
        }
