"""
Badge Catalog

Static, ordered list of badge definitions loaded once from the
`catalog.badges` config tree (`config/badges.yaml`). Catalog order is the
order `evaluate_badges` reports newly earned badges in.

Rows naming an unknown requirement type are kept (as UNKNOWN, never
awarded) and logged once at load.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from questline.core.config import ConfigManager
from questline.core.logging.logger import get_logger
from questline.domain.models.badge import BadgeDefinition, RequirementType
from questline.domain.models.base import DomainValidationError
from questline.modules.shared.exceptions import InvalidInputError, NotFoundError

logger = get_logger(__name__)


class BadgeCatalog:
    def __init__(self, badges: Iterable[BadgeDefinition]) -> None:
        self._badges: tuple[BadgeDefinition, ...] = tuple(badges)
        self._by_id: dict[str, BadgeDefinition] = {}
        for badge in self._badges:
            if badge.id in self._by_id:
                raise InvalidInputError("badges", f"duplicate badge id '{badge.id}'")
            self._by_id[badge.id] = badge

        unknown = [b.id for b in self._badges if b.requirement.type is RequirementType.UNKNOWN]
        if unknown:
            logger.warning(
                "Badges with unknown requirement types will never be awarded",
                extra={"badge_ids": unknown},
            )

    @classmethod
    def from_documents(cls, documents: Sequence[Mapping[str, Any]]) -> "BadgeCatalog":
        badges = []
        for index, doc in enumerate(documents):
            try:
                badges.append(BadgeDefinition.from_document(doc))
            except (DomainValidationError, TypeError, ValueError) as exc:
                raise InvalidInputError("badges", f"record {index} ({doc.get('id')!r}): {exc}") from exc
        return cls(badges)

    @classmethod
    def from_config(cls, key: str = "catalog.badges") -> "BadgeCatalog":
        catalog = cls.from_documents(ConfigManager.get(key, []) or [])
        logger.info("Badge catalog loaded", extra={"badge_count": len(catalog)})
        return catalog

    @property
    def badges(self) -> tuple[BadgeDefinition, ...]:
        return self._badges

    def __len__(self) -> int:
        return len(self._badges)

    def __iter__(self):
        return iter(self._badges)

    def get_badge(self, badge_id: str) -> BadgeDefinition:
        badge = self._by_id.get(badge_id)
        if badge is None:
            raise NotFoundError("Badge", badge_id)
        return badge

    def find_badge(self, badge_id: str) -> Optional[BadgeDefinition]:
        return self._by_id.get(badge_id)
