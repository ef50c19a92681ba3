"""
Daily Challenge Service
=======================

Purpose
-------
Own the single daily-challenge record per (user, calendar day): create it
lazily, reroll it in place, and complete it by checking its requirements
and crediting the reward through ProgressionService.

Domain
------
- none -> active on first access of the day (deterministic daily seed)
- active -> active on reroll (new seed and id, same document key)
- active -> completed when a completion report meets every requirement

Design Notes
------------
- Selection is delegated to the pure `challenge_generator`; this service
  only supplies the day, entitlement, exclusion set and seed.
- Exclusions are the quests the user already completed.
- On store failure the dashboard still gets a challenge: it is computed
  locally and returned with `persisted=False`.
- Completion flips the status inside one atomic update, so a challenge can
  only be rewarded once even under concurrent completion reports.

Configuration Keys
------------------
- daily.requirements.perfect_score        : int (default 100)
- daily.requirements.speed_runner_seconds : int (default 300)
- daily.rewards.xp_multiplier             : int (default 2)
- daily.rewards.perfectionist_badge       : str (default "daily_perfectionist")
- daily.reroll.max_seed                   : int (default 1_000_000)

Events
------
- daily.challenge_created
- daily.challenge_rerolled
- daily.challenge_completed
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Optional

from questline.core.exceptions import StoreConflictError, StoreUnavailableError
from questline.core.logging.logger import LogContext
from questline.core.store.base import Document, daily_challenge_key
from questline.domain.models.base import DomainValidationError
from questline.domain.models.challenge import ChallengeCompletion, DailyChallenge
from questline.modules.daily.challenge_generator import (
    ChallengeRules,
    build_daily_challenge,
    daily_seed,
    requirements_met,
    reroll_seed,
    select_challenge,
)
from questline.modules.shared.base_service import BaseService
from questline.modules.shared.exceptions import ChallengeNotActiveError, InvalidInputError, NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.clock import Clock
    from questline.core.config.manager import ConfigManager
    from questline.core.event.bus import EventBus
    from questline.core.store.base import DocumentStore
    from questline.modules.catalog.quest_catalog import QuestCatalog
    from questline.modules.progression.service import ProgressionService


@dataclass
class _Outcome:
    challenge: Optional[DailyChallenge] = None
    created: bool = False
    met: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


class DailyChallengeService(BaseService):
    """
    Public Methods
    --------------
    - get_or_create_daily_challenge() -> Today's challenge, created lazily
    - reroll() -> Replace the active challenge with a new selection
    - complete_daily_challenge() -> Check requirements and award rewards
    - get_daily_challenge_stats() -> Completion and streak totals
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        store: DocumentStore,
        quest_catalog: QuestCatalog,
        progression_service: ProgressionService,
        clock: Clock,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._quests = quest_catalog
        self._progression = progression_service
        self._clock = clock
        self._rng = rng or random.Random()

    def _rules(self) -> ChallengeRules:
        return ChallengeRules.from_config(self.get_config("daily"))

    def _parse(self, user_id: str, doc: Optional[Document]) -> Optional[DailyChallenge]:
        if not doc:
            return None
        try:
            return DailyChallenge.from_document(doc)
        except (DomainValidationError, KeyError, TypeError, ValueError) as exc:
            self.log.warning(
                "Discarding malformed daily challenge record",
                extra={"user_id": user_id, "error": str(exc)},
            )
            return None

    async def _excluded_quest_ids(self, user_id: str) -> frozenset[str]:
        state, _ = await self._progression.get_state(user_id)
        return frozenset(state.completed_quests)

    def _build(
        self,
        day: date,
        seed: int,
        is_premium: bool,
        excluded: frozenset[str],
        exclude_quest_id: Optional[str] = None,
    ) -> DailyChallenge:
        selection = select_challenge(
            self._quests.list_quests(),
            seed,
            day,
            is_premium=is_premium,
            excluded_ids=excluded,
            exclude_quest_id=exclude_quest_id,
            rules=self._rules(),
        )
        return build_daily_challenge(selection, day, self._clock.start_of_next_day(day))

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    async def get_or_create_daily_challenge(
        self,
        user_id: str,
        day: Optional[date] = None,
        is_premium: bool = False,
    ) -> DailyChallenge:
        """
        Return the user's challenge for `day` (default: today), creating it
        with the day's deterministic seed on first access.

        Raises:
            InvalidInputError: If user_id is empty
            NoChallengeAvailableError: If the catalog has no selectable quest
        """
        user_id = self.validate_user_id(user_id)
        day = day or self._clock.today()
        key = daily_challenge_key(user_id, day.isoformat())

        async with LogContext(user_id=user_id, trigger="dashboard", component="daily", operation="get_or_create"):
            excluded = await self._excluded_quest_ids(user_id)
            outcome = _Outcome()

            def update(doc: Optional[Document]) -> Optional[Document]:
                nonlocal outcome
                outcome = _Outcome()
                existing = self._parse(user_id, doc)
                if existing is not None:
                    outcome.challenge = existing
                    return None
                outcome.challenge = self._build(day, daily_seed(day), is_premium, excluded)
                outcome.created = True
                return outcome.challenge.to_document()

            try:
                await self._store.update_atomic(key, update)
            except (StoreUnavailableError, StoreConflictError) as exc:
                self.log_degraded("get_or_create_daily_challenge", exc, user_id=user_id, day=day.isoformat())
                return self._build(day, daily_seed(day), is_premium, excluded).as_transient()

            challenge = outcome.challenge
            if outcome.created:
                self.log_operation(
                    "daily_challenge_created",
                    user_id=user_id,
                    challenge_id=challenge.id,
                    quest_id=challenge.quest_id,
                    challenge_type=challenge.type.value,
                )
                await self.emit_event(
                    "daily.challenge_created",
                    {
                        "user_id": user_id,
                        "challenge_id": challenge.id,
                        "quest_id": challenge.quest_id,
                        "type": challenge.type.value,
                        "date": day.isoformat(),
                    },
                )
            return challenge

    async def reroll(
        self,
        user_id: str,
        day: Optional[date] = None,
        is_premium: bool = False,
        seed: Optional[int] = None,
        current_quest_id: Optional[str] = None,
    ) -> DailyChallenge:
        """
        Replace the day's active challenge with a new selection.

        The new seed is `reroll_seed(seed, previous_seed)`; `seed` must be
        positive and a fresh one is drawn when it is omitted, so the id always
        changes. The quest being replaced is excluded unless it is the only
        one available. The record is overwritten in place under the same
        (user, day) key.

        `current_quest_id` is the quest the caller was shown; it is only
        consulted when no stored record can be read.

        Raises:
            InvalidInputError: If `seed` is not a positive integer
            ChallengeNotActiveError: If the day's challenge is already completed
            NoChallengeAvailableError: If the catalog has no selectable quest
        """
        user_id = self.validate_user_id(user_id)
        day = day or self._clock.today()
        key = daily_challenge_key(user_id, day.isoformat())
        if seed is None:
            max_seed = max(2, int(self.get_config("daily.reroll.max_seed", 1_000_000)))
            seed = self._rng.randrange(1, max_seed)
        elif isinstance(seed, bool) or not isinstance(seed, int) or seed < 1:
            raise InvalidInputError("seed", f"reroll seed must be a positive integer, got {seed!r}")

        async with LogContext(user_id=user_id, trigger="reroll", component="daily", operation="reroll"):
            excluded = await self._excluded_quest_ids(user_id)
            outcome = _Outcome()

            def update(doc: Optional[Document]) -> Optional[Document]:
                nonlocal outcome
                outcome = _Outcome()
                current = self._parse(user_id, doc)
                if current is not None and not current.is_active:
                    raise ChallengeNotActiveError(current.id, current.status.value)
                previous_seed = current.seed if current else 0
                outcome.extra["previous"] = current
                outcome.challenge = self._build(
                    day,
                    reroll_seed(seed, previous_seed),
                    is_premium,
                    excluded,
                    exclude_quest_id=current.quest_id if current else current_quest_id,
                )
                return outcome.challenge.to_document()

            try:
                await self._store.update_atomic(key, update)
            except (StoreUnavailableError, StoreConflictError) as exc:
                self.log_degraded("reroll", exc, user_id=user_id, day=day.isoformat())
                return self._build(
                    day, seed, is_premium, excluded, exclude_quest_id=current_quest_id
                ).as_transient()

            challenge = outcome.challenge
            previous: Optional[DailyChallenge] = outcome.extra.get("previous")
            self.log_operation(
                "daily_challenge_rerolled",
                user_id=user_id,
                challenge_id=challenge.id,
                quest_id=challenge.quest_id,
                previous_quest_id=previous.quest_id if previous else None,
            )
            await self.emit_event(
                "daily.challenge_rerolled",
                {
                    "user_id": user_id,
                    "challenge_id": challenge.id,
                    "quest_id": challenge.quest_id,
                    "previous_quest_id": previous.quest_id if previous else None,
                    "date": day.isoformat(),
                },
            )
            return challenge

    async def complete_daily_challenge(
        self,
        user_id: str,
        completion: ChallengeCompletion,
        day: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Mark the day's challenge completed if the report meets every
        requirement, then credit its rewards.

        Returns:
            Dict containing:
                - success: whether the requirements were met
                - challenge_id, rewards
                - award: ProgressionService.award_xp result (on success)
                - persisted: False when the store was unavailable

        Raises:
            NotFoundError: If no challenge exists for the day
            ChallengeNotActiveError: If it is already completed or expired
        """
        user_id = self.validate_user_id(user_id)
        day = day or self._clock.today()
        key = daily_challenge_key(user_id, day.isoformat())
        now = self._clock.now()

        async with LogContext(user_id=user_id, trigger="challenge_complete", component="daily", operation="complete"):
            outcome = _Outcome()

            def update(doc: Optional[Document]) -> Optional[Document]:
                nonlocal outcome
                outcome = _Outcome()
                challenge = self._parse(user_id, doc)
                if challenge is None:
                    raise NotFoundError("DailyChallenge", f"user_id={user_id}, date={day.isoformat()}")
                if not challenge.is_active:
                    raise ChallengeNotActiveError(challenge.id, challenge.status.value)
                if now >= challenge.expires_at:
                    raise ChallengeNotActiveError(challenge.id, "expired")
                outcome.challenge = challenge
                if not requirements_met(challenge, completion):
                    return None
                outcome.met = True
                outcome.challenge = challenge.complete(now)
                return outcome.challenge.to_document()

            try:
                await self._store.update_atomic(key, update)
            except (StoreUnavailableError, StoreConflictError) as exc:
                self.log_degraded("complete_daily_challenge", exc, user_id=user_id, day=day.isoformat())
                return {
                    "success": False,
                    "challenge_id": None,
                    "rewards": None,
                    "message": "Daily challenge could not be verified right now",
                    "persisted": False,
                }

            challenge = outcome.challenge
            if not outcome.met:
                self.log_operation(
                    "daily_challenge_requirements_not_met",
                    user_id=user_id,
                    challenge_id=challenge.id,
                )
                return {
                    "success": False,
                    "challenge_id": challenge.id,
                    "rewards": challenge.rewards.to_document(),
                    "message": "Challenge requirements not met",
                    "persisted": True,
                }

            award = await self._progression.award_xp(
                user_id,
                challenge.rewards.xp,
                "daily_challenge",
                badge=challenge.rewards.badge,
                daily_challenge_day=day,
            )

            self.log_operation(
                "daily_challenge_completed",
                user_id=user_id,
                challenge_id=challenge.id,
                xp=challenge.rewards.xp,
                award_persisted=award["persisted"],
            )
            await self.emit_event(
                "daily.challenge_completed",
                {
                    "user_id": user_id,
                    "challenge_id": challenge.id,
                    "quest_id": challenge.quest_id,
                    "type": challenge.type.value,
                    "xp": challenge.rewards.xp,
                    "badge": challenge.rewards.badge,
                    "date": day.isoformat(),
                },
            )
            return {
                "success": True,
                "challenge_id": challenge.id,
                "rewards": challenge.rewards.to_document(),
                "message": "Daily challenge completed!",
                "award": award,
                "persisted": award["persisted"],
            }

    async def get_daily_challenge_stats(self, user_id: str) -> Dict[str, Any]:
        state, persisted = await self._progression.get_state(user_id)
        return {
            "total_completed": state.daily_challenges_completed,
            "current_streak": state.streak,
            "longest_streak": state.longest_streak,
            "total_xp": state.xp,
            "last_completed": state.last_daily_challenge.isoformat() if state.last_daily_challenge else None,
            "persisted": persisted,
        }
