# =============================================================================
# Goal Catalog
# =============================================================================
"""
The fixed set of goal objects that live in the grid.

Every goal type has:
- a colour fragment, used to match LTL goal labels ("F green")
- a tag, the short object name ("plus", "ex", "star")
- a zone vector, a 24-element one-hot block exposed in observations

Goal codes sent over the side channel are indices in declaration order:
0 = GreenPlus, 1 = RedEx, 2 = YellowStar.
"""

from enum import Enum
import logging
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)

ZONE_VECTOR_SIZE = 24
_ZONE_BLOCK = ZONE_VECTOR_SIZE // 3


class GoalType(Enum):
    """Goal objects, in wire-code order."""

    GreenPlus = ("green", "plus")
    RedEx = ("red", "ex")
    YellowStar = ("yellow", "star")

    def __init__(self, color: str, tag: str):
        self.color = color
        self.tag = tag

    @property
    def code(self) -> int:
        return list(GoalType).index(self)

    @property
    def zone_vector(self) -> np.ndarray:
        vec = np.zeros(ZONE_VECTOR_SIZE, dtype=np.float32)
        start = self.code * _ZONE_BLOCK
        vec[start:start + _ZONE_BLOCK] = 1.0
        return vec

    @classmethod
    def from_code(cls, code: int) -> "GoalType":
        """
        Decode a wire code.

        Raises ValueError for anything that is not a valid integer code;
        bool is rejected even though it subclasses int.
        """
        if isinstance(code, bool) or not isinstance(code, (int, np.integer)):
            raise ValueError(f"goal code must be an integer, got {code!r}")
        members = list(cls)
        if not 0 <= int(code) < len(members):
            raise ValueError(f"goal code {code} out of range 0..{len(members) - 1}")
        return members[int(code)]

    @classmethod
    def from_name(cls, name: str) -> "GoalType":
        """Look up by enum name ("RedEx") or tag ("ex")."""
        for goal in cls:
            if name == goal.name or name == goal.tag:
                return goal
        raise ValueError(f"unknown goal {name!r}")


def goals_in_label(label: str) -> List[GoalType]:
    """All goal types whose colour fragment occurs in an LTL label (case-sensitive)."""
    return [goal for goal in GoalType if goal.color in label]


def parse_ltl_goal(label: str) -> Optional[GoalType]:
    """
    Map an LTL goal label to a single goal type.

    Matching is by substring containment of the colour fragment. Labels
    that mention no colour, or more than one, do not name a single goal
    and return None.
    """
    matches = goals_in_label(label)
    if len(matches) == 1:
        return matches[0]
    if matches:
        logger.warning(
            "Ambiguous LTL goal %r mentions %s; ignoring",
            label, [g.name for g in matches],
        )
    else:
        logger.warning("LTL goal %r names no known goal; ignoring", label)
    return None


def one_hot(goals, dtype=np.float32) -> np.ndarray:
    """Encode a goal, or a collection of goals, as a 3-element indicator vector."""
    vec = np.zeros(len(GoalType), dtype=dtype)
    if goals is None:
        return vec
    if isinstance(goals, GoalType):
        goals = [goals]
    for goal in goals:
        vec[goal.code] = 1.0
    return vec
