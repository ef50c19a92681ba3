"""Daily challenge selection and the per-day challenge record."""

from questline.modules.daily.service import DailyChallengeService

__all__ = ["DailyChallengeService"]
