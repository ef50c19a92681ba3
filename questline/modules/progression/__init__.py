"""
Progression module: level, streak, badge and scoring rules plus the
service that applies them to a user's stored record.
"""

from questline.modules.progression.service import LoginResult, ProgressionService, SubmitResult

__all__ = ["LoginResult", "ProgressionService", "SubmitResult"]
