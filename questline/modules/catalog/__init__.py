from questline.modules.catalog.badge_catalog import BadgeCatalog
from questline.modules.catalog.quest_catalog import QuestCatalog, QuestFilter

__all__ = ["BadgeCatalog", "QuestCatalog", "QuestFilter"]
