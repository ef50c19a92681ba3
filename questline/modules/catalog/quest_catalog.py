"""
Quest Catalog

Purpose
-------
Read-only view of the quest metadata the engine consumes. Quests are loaded
once from the `catalog.quests` config tree (`config/quests.yaml`) or passed
in directly, validated into `QuestDefinition` values, and kept in catalog
order.

Responsibilities
----------------
- Parse and validate quest records at load time
- Filter by entitlement, category, difficulty and exclusion set
- Look up a quest by id
- Group quest ids by category (used for category-completion badges)

Non-Responsibilities
--------------------
- Quest copy, translations, or answer shuffling
- Scoring (see `quest_scorer`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from questline.core.config import ConfigManager
from questline.core.logging.logger import get_logger
from questline.domain.models.base import DomainValidationError
from questline.domain.models.quest import Difficulty, QuestDefinition
from questline.modules.shared.exceptions import InvalidInputError, NotFoundError

logger = get_logger(__name__)


@dataclass(frozen=True)
class QuestFilter:
    """
    Selection criteria for `QuestCatalog.list_quests`.

    `include_premium=False` drops premium quests (non-premium users).
    """

    include_premium: bool = True
    category: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    exclude_ids: frozenset[str] = field(default_factory=frozenset)

    def matches(self, quest: QuestDefinition) -> bool:
        if quest.is_premium and not self.include_premium:
            return False
        if self.category is not None and quest.category != self.category:
            return False
        if self.difficulty is not None and quest.difficulty is not self.difficulty:
            return False
        return quest.id not in self.exclude_ids


class QuestCatalog:
    """Ordered, immutable quest catalog."""

    def __init__(self, quests: Iterable[QuestDefinition]) -> None:
        self._quests: tuple[QuestDefinition, ...] = tuple(quests)
        self._by_id: dict[str, QuestDefinition] = {}
        for quest in self._quests:
            if quest.id in self._by_id:
                raise InvalidInputError("quests", f"duplicate quest id '{quest.id}'")
            self._by_id[quest.id] = quest

    @classmethod
    def from_documents(cls, documents: Sequence[Mapping[str, Any]]) -> "QuestCatalog":
        quests = []
        for index, doc in enumerate(documents):
            try:
                quests.append(QuestDefinition.from_document(doc))
            except (DomainValidationError, TypeError, ValueError) as exc:
                logger.error(
                    "Invalid quest record in catalog",
                    extra={"index": index, "quest_id": doc.get("id"), "error": str(exc)},
                )
                raise InvalidInputError("quests", f"record {index} ({doc.get('id')!r}): {exc}") from exc
        return cls(quests)

    @classmethod
    def from_config(cls, key: str = "catalog.quests") -> "QuestCatalog":
        documents = ConfigManager.get(key, []) or []
        catalog = cls.from_documents(documents)
        logger.info(
            "Quest catalog loaded",
            extra={"quest_count": len(catalog), "categories": sorted(catalog.categories())},
        )
        return catalog

    def __len__(self) -> int:
        return len(self._quests)

    def __iter__(self):
        return iter(self._quests)

    def __contains__(self, quest_id: object) -> bool:
        return quest_id in self._by_id

    def list_quests(self, quest_filter: Optional[QuestFilter] = None) -> list[QuestDefinition]:
        """Quests matching `quest_filter`, in catalog order."""
        if quest_filter is None:
            return list(self._quests)
        return [quest for quest in self._quests if quest_filter.matches(quest)]

    def get_quest(self, quest_id: str) -> QuestDefinition:
        """
        Raises:
            NotFoundError: If no quest has this id
        """
        quest = self._by_id.get(quest_id)
        if quest is None:
            raise NotFoundError("Quest", quest_id)
        return quest

    def find_quest(self, quest_id: str) -> Optional[QuestDefinition]:
        return self._by_id.get(quest_id)

    def categories(self) -> list[str]:
        return list(dict.fromkeys(quest.category for quest in self._quests))

    def quest_ids_by_category(self) -> dict[str, tuple[str, ...]]:
        grouped: dict[str, list[str]] = {}
        for quest in self._quests:
            grouped.setdefault(quest.category, []).append(quest.id)
        return {category: tuple(ids) for category, ids in grouped.items()}
