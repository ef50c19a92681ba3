"""
Level Calculator

Purpose
-------
Pure mapping from accumulated XP to a level label and to progress toward the
next level.

Design Notes
------------
- Pure functions only; the threshold table is passed in (callers read it
  from `progression.levels` in config and validate it once with
  `build_threshold_table`).
- The table is strictly increasing and starts at 0, so every non-negative XP
  value has exactly one level.
- Negative XP is invalid input; callers clamp before calling.

Usage
-----
    from questline.modules.progression.level_calculator import get_level

    get_level(450)              # "Expert"
    progress_to_next(150)       # LevelProgress(percentage=25.0, ...)
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from questline.modules.shared.exceptions import InvalidInputError

LevelTable = tuple[tuple[int, str], ...]

DEFAULT_LEVEL_THRESHOLDS: LevelTable = (
    (0, "Novice"),
    (100, "Intermediate"),
    (300, "Expert"),
    (600, "Master"),
)


@dataclass(frozen=True)
class LevelProgress:
    level: str
    percentage: float
    current_threshold: int
    next_threshold: Optional[int]
    is_max_level: bool
    xp_to_next: int


def build_threshold_table(raw: Mapping[Any, str] | Sequence[Any]) -> LevelTable:
    """
    Normalize a threshold table from config.

    Accepts either a `{threshold: label}` mapping or a list of
    `{"xp": int, "label": str}` entries.

    Raises:
        InvalidInputError: If the table is empty, does not start at 0, or is
            not strictly increasing

    Example:
        >>> build_threshold_table({0: "Novice", 100: "Intermediate"})
        ((0, 'Novice'), (100, 'Intermediate'))
    """
    if isinstance(raw, Mapping):
        pairs = [(int(threshold), str(label)) for threshold, label in raw.items()]
    else:
        pairs = [(int(entry["xp"]), str(entry["label"])) for entry in raw]

    if not pairs:
        raise InvalidInputError("level_thresholds", "table is empty")
    if pairs[0][0] != 0:
        raise InvalidInputError("level_thresholds", "first threshold must be 0")
    for (prev, _), (current, _) in zip(pairs, pairs[1:]):
        if current <= prev:
            raise InvalidInputError(
                "level_thresholds",
                f"thresholds must be strictly increasing ({prev} then {current})",
            )
    return tuple(pairs)


def _index_for(xp: int, table: LevelTable) -> int:
    if xp < 0:
        raise InvalidInputError("xp", f"must be non-negative, got {xp}")
    return bisect_right([threshold for threshold, _ in table], xp) - 1


def get_level(xp: int, table: LevelTable = DEFAULT_LEVEL_THRESHOLDS) -> str:
    """
    Return the label of the highest threshold not above `xp`.

    Example:
        >>> get_level(0)
        'Novice'
        >>> get_level(900)
        'Master'
    """
    return table[_index_for(xp, table)][1]


def level_rank(label: str, table: LevelTable = DEFAULT_LEVEL_THRESHOLDS) -> int:
    """Position of a level label in the table (0 = lowest); -1 if unknown."""
    for index, (_, name) in enumerate(table):
        if name == label:
            return index
    return -1


def progress_to_next(xp: int, table: LevelTable = DEFAULT_LEVEL_THRESHOLDS) -> LevelProgress:
    """
    Progress from the current threshold toward the next one.

    At the top threshold the percentage is pinned to 100.

    Example:
        >>> progress_to_next(150).percentage
        25.0
        >>> progress_to_next(700).is_max_level
        True
    """
    index = _index_for(xp, table)
    current_threshold, label = table[index]

    if index == len(table) - 1:
        return LevelProgress(
            level=label,
            percentage=100.0,
            current_threshold=current_threshold,
            next_threshold=None,
            is_max_level=True,
            xp_to_next=0,
        )

    next_threshold = table[index + 1][0]
    span = next_threshold - current_threshold
    percentage = min(100.0, max(0.0, (xp - current_threshold) / span * 100))

    return LevelProgress(
        level=label,
        percentage=round(percentage, 2),
        current_threshold=current_threshold,
        next_threshold=next_threshold,
        is_max_level=False,
        xp_to_next=next_threshold - xp,
    )
