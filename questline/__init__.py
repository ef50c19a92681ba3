"""
Questline: progression and rewards engine for a gamified learning app.

Turns logins and quest submissions into XP, levels, streaks and badges, and
selects one daily challenge per user per calendar day.
"""

__version__ = "1.0.0"
