"""
Service Container
=================

Purpose
-------
Wire the engine together: document store, catalogs, clock, event bus and
the two orchestrating services, with one initialize/shutdown lifecycle.

Responsibilities
----------------
- Build the document store named by `Config.STORE_BACKEND`
- Load the quest and badge catalogs from config
- Construct ProgressionService and DailyChallengeService
- Expose services through guarded properties
- Report a small health snapshot

Non-Responsibilities
--------------------
- Progression rules (pure leaf modules)
- Loading YAML (ConfigManager)

Architecture Notes
------------------
- Collaborators may be injected (tests pass an in-memory store and a
  FixedClock); anything not injected is built from config.
- Services follow the constructor pattern (config_manager, event_bus,
  logger, ...dependencies).
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from questline.core.clock import Clock
from questline.core.config.manager import ConfigManager
from questline.core.event.bus import EventBus
from questline.core.logging.logger import get_logger
from questline.core.store import DocumentStore, create_store
from questline.modules.catalog import BadgeCatalog, QuestCatalog
from questline.modules.daily.service import DailyChallengeService
from questline.modules.progression.service import ProgressionService

if TYPE_CHECKING:
    from logging import Logger

logger = get_logger(__name__)


class ServiceContainer:
    """
    Usage:
        container = ServiceContainer()
        await container.initialize()

        await container.progression.on_login("u-42")
        challenge = await container.daily.get_or_create_daily_challenge("u-42")
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager = ConfigManager,
        event_bus: Optional[EventBus] = None,
        logger: Optional[Logger] = None,
        *,
        store: Optional[DocumentStore] = None,
        quest_catalog: Optional[QuestCatalog] = None,
        badge_catalog: Optional[BadgeCatalog] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus or EventBus(config_manager)
        self._logger = logger or get_logger(__name__)

        self._store = store
        self._quest_catalog = quest_catalog
        self._badge_catalog = badge_catalog
        self._clock = clock

        self._progression: Optional[ProgressionService] = None
        self._daily: Optional[DailyChallengeService] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            start = time.perf_counter()
            if self._store is None:
                self._store = create_store()
            await self._store.initialize()
            self._service_init_times["store"] = time.perf_counter() - start

            start = time.perf_counter()
            if self._quest_catalog is None:
                self._quest_catalog = QuestCatalog.from_config()
            if self._badge_catalog is None:
                self._badge_catalog = BadgeCatalog.from_config()
            self._service_init_times["catalogs"] = time.perf_counter() - start

            if self._clock is None:
                self._clock = Clock()

            start = time.perf_counter()
            self._progression = ProgressionService(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger("questline.modules.progression.service.ProgressionService"),
                store=self._store,
                quest_catalog=self._quest_catalog,
                badge_catalog=self._badge_catalog,
                clock=self._clock,
            )
            self._service_init_times["progression"] = time.perf_counter() - start

            start = time.perf_counter()
            self._daily = DailyChallengeService(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger("questline.modules.daily.service.DailyChallengeService"),
                store=self._store,
                quest_catalog=self._quest_catalog,
                progression_service=self._progression,
                clock=self._clock,
            )
            self._service_init_times["daily"] = time.perf_counter() - start

            self._initialized = True
            self._init_end = time.perf_counter()
            self._logger.info(
                "Service container initialized",
                extra={
                    "store": self._store.name,
                    "timezone": self._clock.tz_name,
                    "quest_count": len(self._quest_catalog),
                    "badge_count": len(self._badge_catalog),
                    "init_time_seconds": round(self._init_end - self._init_start, 3),
                },
            )
        except Exception as exc:
            self._logger.critical(
                "Service container initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            raise

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        await self._event_bus.drain()
        if self._store is not None:
            await self._store.shutdown()

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        store_healthy = bool(self._store) and await self._store.health_check()
        return {
            "initialized": self._initialized,
            "store": self._store.name if self._store else None,
            "store_healthy": store_healthy,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "event_bus": self._event_bus.get_metrics_summary(),
        }

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def progression(self) -> ProgressionService:
        if not self._initialized or self._progression is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._progression

    @property
    def daily(self) -> DailyChallengeService:
        if not self._initialized or self._daily is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._daily

    @property
    def quest_catalog(self) -> QuestCatalog:
        if self._quest_catalog is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._quest_catalog

    @property
    def badge_catalog(self) -> BadgeCatalog:
        if self._badge_catalog is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._badge_catalog
