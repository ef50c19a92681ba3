"""
Pytest Configuration and Fixtures for Questline Tests
=====================================================

Purpose
-------
Centralized fixtures for the Questline test suite: configuration, clock,
document stores, catalogs, event capture and wired services.

Responsibilities
----------------
- Load the repository's YAML tunables into ConfigManager per test
- Provide a FixedClock pinned to a known instant
- Provide in-memory and Redis (testcontainers) document stores
- Factories for quests, attempts and progression documents
- Record published events for assertions

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- Production configuration (test-specific only)

Architecture Notes
------------------
- Unit tests use the in-memory store (fast, isolated)
- Integration tests use a real Redis from testcontainers
- Fixtures follow scope hierarchy: session > function
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("PROGRESSION_TIMEZONE", "UTC")

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest
from testcontainers.redis import RedisContainer

from questline.core.clock import FixedClock
from questline.core.config import ConfigManager
from questline.core.event.bus import EventBus
from questline.core.logging.logger import get_logger
from questline.core.store.memory import InMemoryDocumentStore
from questline.domain.models.quest import (
    Difficulty,
    QuestAttempt,
    QuestDefinition,
    QuestStep,
    StepAnswer,
    StepType,
)
from questline.modules.catalog import BadgeCatalog, QuestCatalog
from questline.modules.daily.service import DailyChallengeService
from questline.modules.progression.service import ProgressionService

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

# Saturday 2026-03-14 12:00 UTC
FIXED_INSTANT = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.fixture(autouse=True)
def config_manager() -> Generator[type[ConfigManager], None, None]:
    """Fresh ConfigManager loaded from the repository's config/ per test."""
    ConfigManager.initialize(CONFIG_DIR)
    yield ConfigManager
    ConfigManager.reset()


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    container.start()
    yield container
    logger.info("Stopping Redis testcontainer...")
    container.stop()


@pytest.fixture
def redis_url(redis_container: RedisContainer) -> str:
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}/0"


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_INSTANT)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def event_bus(config_manager) -> EventBus:
    return EventBus(config_manager, listener_timeout_seconds=1.0)


@pytest.fixture
def published_events(event_bus: EventBus) -> list[tuple[str, dict[str, Any]]]:
    """Every event published on `event_bus`, in order, as (name, payload)."""
    captured: list[tuple[str, dict[str, Any]]] = []

    def recorder(event_name: str):
        async def record(payload: dict[str, Any]) -> None:
            captured.append((event_name, payload))

        return record

    for event_name in EVENT_NAMES:
        event_bus.subscribe(event_name, recorder(event_name), identifier=f"test-capture@{event_name}")

    return captured


EVENT_NAMES = (
    "progression.streak_updated",
    "progression.quest_completed",
    "progression.xp_awarded",
    "progression.level_up",
    "progression.badge_unlocked",
    "daily.challenge_created",
    "daily.challenge_rerolled",
    "daily.challenge_completed",
)


def event_names(events: list[tuple[str, dict[str, Any]]]) -> list[str]:
    return [name for name, _ in events]


@pytest.fixture
def quest_catalog() -> QuestCatalog:
    return QuestCatalog.from_config()


@pytest.fixture
def badge_catalog() -> BadgeCatalog:
    return BadgeCatalog.from_config()


@pytest.fixture
def progression_service(store, quest_catalog, badge_catalog, clock, event_bus, config_manager) -> ProgressionService:
    return ProgressionService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.ProgressionService"),
        store=store,
        quest_catalog=quest_catalog,
        badge_catalog=badge_catalog,
        clock=clock,
    )


@pytest.fixture
def daily_service(store, quest_catalog, progression_service, clock, event_bus, config_manager) -> DailyChallengeService:
    return DailyChallengeService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.DailyChallengeService"),
        store=store,
        quest_catalog=quest_catalog,
        progression_service=progression_service,
        clock=clock,
    )


# ============================================================================
# FACTORIES
# ============================================================================


def make_quest(
    quest_id: str = "q-1",
    category: str = "budgeting",
    difficulty: Difficulty = Difficulty.EASY,
    *,
    steps: tuple[QuestStep, ...] = (QuestStep(StepType.QUIZ, option_count=4, correct_index=1),),
    duration_minutes: int = 10,
    xp: int = 50,
    is_premium: bool = False,
) -> QuestDefinition:
    return QuestDefinition(
        id=quest_id,
        category=category,
        difficulty=difficulty,
        duration_minutes=duration_minutes,
        xp=xp,
        is_premium=is_premium,
        steps=steps,
    )


def correct_answers(quest: QuestDefinition) -> tuple[StepAnswer, ...]:
    """Answers that score full points on every step of `quest`."""
    answers = []
    for step in quest.steps:
        if step.type is StepType.QUIZ:
            answers.append(StepAnswer(completed=True, selected_index=step.correct_index))
        elif step.type is StepType.CHECKLIST:
            answers.append(StepAnswer(completed=True, checked_count=step.item_count))
        else:
            answers.append(StepAnswer(completed=True, text="I set up an automatic monthly transfer."))
    return tuple(answers)


def perfect_attempt(quest: QuestDefinition, **kwargs: Any) -> QuestAttempt:
    kwargs.setdefault("elapsed_seconds", quest.duration_seconds * 2)
    return QuestAttempt(answers=correct_answers(quest), **kwargs)
