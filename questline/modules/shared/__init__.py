"""
Shared building blocks for Questline domain modules.

- BaseService: logging, config and event helpers for orchestrators
- Domain exception hierarchy rooted at QuestlineDomainException
"""

from questline.modules.shared.base_service import BaseService
from questline.modules.shared.exceptions import (
    ChallengeNotActiveError,
    InvalidInputError,
    NoChallengeAvailableError,
    NotFoundError,
    QuestlineDomainException,
)

__all__ = [
    "BaseService",
    "QuestlineDomainException",
    "InvalidInputError",
    "NotFoundError",
    "NoChallengeAvailableError",
    "ChallengeNotActiveError",
]
