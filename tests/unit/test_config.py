"""
Unit Tests for Configuration and Catalogs
=========================================

Purpose
-------
Verify YAML-backed tunables load through ConfigManager and that the quest
and badge catalogs build from them.

Test Coverage
-------------
- Dot-notation reads, defaults and runtime overrides
- Override validators
- QuestCatalog filtering, lookup and duplicate rejection
- BadgeCatalog loading

Testing Strategy
----------------
- Shipped config/ directory, per-test reset via the autouse fixture
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from questline.core.config.manager import ConfigWriteError
from questline.domain.models.quest import Difficulty
from questline.modules.catalog import BadgeCatalog, QuestCatalog, QuestFilter
from questline.modules.shared.exceptions import InvalidInputError, NotFoundError
from tests.conftest import make_quest


@pytest.mark.unit
class TestConfigManager:
    def test_reads_nested_values(self, config_manager):
        assert config_manager.get("scoring.points.quiz") == 50
        assert config_manager.get("progression.idempotency_window") == 50
        assert config_manager.get("daily.rewards.xp_multiplier") == 2

    def test_missing_key_returns_default(self, config_manager):
        assert config_manager.get("scoring.points.video", 0) == 0

    def test_override_and_clear(self, config_manager):
        config_manager.override("scoring.hint_penalty", 25)

        assert config_manager.get("scoring.hint_penalty") == 25

        config_manager.clear_overrides()

        assert config_manager.get("scoring.hint_penalty") == 10

    def test_validator_rejects_bad_override(self, config_manager):
        config_manager.register_validator("progression.idempotency_window", int)

        with pytest.raises(ConfigWriteError):
            config_manager.override("progression.idempotency_window", "many")

    def test_health_snapshot(self, config_manager):
        snapshot = config_manager.health_snapshot()

        assert snapshot["initialized"] is True
        assert snapshot["yaml_errors"] == 0


@pytest.mark.unit
class TestQuestCatalog:
    def test_loads_shipped_quests(self, quest_catalog):
        assert len(quest_catalog) == 9
        assert "budget-basics" in quest_catalog
        assert quest_catalog.get_quest("index-funds").difficulty is Difficulty.HARD

    def test_filters(self, quest_catalog):
        free = quest_catalog.list_quests(QuestFilter(include_premium=False))
        saving = quest_catalog.list_quests(QuestFilter(category="saving"))

        assert all(not quest.is_premium for quest in free)
        assert len(free) == 6
        assert [quest.id for quest in saving] == ["emergency-fund-101", "savings-automation"]

    def test_exclude_ids(self, quest_catalog):
        remaining = quest_catalog.list_quests(QuestFilter(exclude_ids=frozenset({"budget-basics"})))

        assert "budget-basics" not in [quest.id for quest in remaining]

    def test_quest_ids_by_category(self, quest_catalog):
        by_category = quest_catalog.quest_ids_by_category()

        assert by_category["debt"] == ("debt-avalanche", "credit-score-101")
        assert set(by_category) == {"budgeting", "saving", "debt", "investing"}

    def test_unknown_quest(self, quest_catalog):
        assert quest_catalog.find_quest("nope") is None
        with pytest.raises(NotFoundError):
            quest_catalog.get_quest("nope")

    def test_duplicate_ids_rejected(self):
        with pytest.raises(InvalidInputError):
            QuestCatalog([make_quest("dup"), make_quest("dup")])


@pytest.mark.unit
class TestBadgeCatalog:
    def test_loads_shipped_badges(self, badge_catalog):
        assert len(badge_catalog) == 21
        assert badge_catalog.badges[0].id == "first_quest"
        assert badge_catalog.get_badge("quarter_streak").rarity.value == "rare"

    def test_duplicate_ids_rejected(self):
        doc = {"id": "b", "requirement": {"type": "xp", "value": 1}}

        with pytest.raises(InvalidInputError):
            BadgeCatalog.from_documents([doc, doc])

    def test_missing_badge(self, badge_catalog):
        assert badge_catalog.find_badge("nope") is None
        with pytest.raises(NotFoundError):
            badge_catalog.get_badge("nope")
