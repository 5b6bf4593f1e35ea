# =============================================================================
# Goal Sequence Queue
# =============================================================================
"""
Ordered queue of goals the agent still has to reach.

The queue remembers the last sequence it was given (the template) so
that every new episode starts from the full sequence again, while the
trainer only has to send a sequence when it wants a different one.
"""

from collections import deque
import logging
from typing import Deque, Iterable, List, Optional, Set, Tuple

from ltl_gridworld.environment.goals import GoalType

logger = logging.getLogger(__name__)


class GoalSequenceQueue:
    """
    Example:
    --------
    >>> queue = GoalSequenceQueue()
    >>> queue.set_sequence([GoalType.RedEx, GoalType.GreenPlus])
    >>> queue.peek_current()
    <GoalType.RedEx: ('red', 'ex')>
    >>> queue.advance()
    <GoalType.GreenPlus: ('green', 'plus')>
    >>> queue.advance() is None
    True
    """

    def __init__(self, sequence: Optional[Iterable[GoalType]] = None):
        self._template: Tuple[GoalType, ...] = ()
        self._queue: Deque[GoalType] = deque()
        self._achieved: Set[GoalType] = set()
        if sequence:
            self.set_sequence(sequence)

    def set_sequence(self, goals: Optional[Iterable[GoalType]]) -> bool:
        """
        Replace the queue and clear achieved goals.

        Empty or None input leaves everything untouched.

        Returns:
        --------
        bool
            True if the queue was replaced
        """
        goals = tuple(goals) if goals is not None else ()
        if not goals:
            logger.warning("Ignoring empty goal sequence")
            return False

        self._template = goals
        self._queue = deque(goals)
        self._achieved = set()
        return True

    def restart(self) -> None:
        """Refill from the last sequence set, for a new episode."""
        self._queue = deque(self._template)
        self._achieved = set()

    def peek_current(self) -> Optional[GoalType]:
        return self._queue[0] if self._queue else None

    def advance(self) -> Optional[GoalType]:
        """Mark the head as achieved and return the new head (None when exhausted)."""
        if not self._queue:
            return None
        self._achieved.add(self._queue.popleft())
        return self.peek_current()

    @property
    def template(self) -> Tuple[GoalType, ...]:
        return self._template

    @property
    def remaining(self) -> List[GoalType]:
        return list(self._queue)

    @property
    def achieved(self) -> Set[GoalType]:
        return set(self._achieved)

    @property
    def is_exhausted(self) -> bool:
        """True once a non-empty sequence has been fully achieved."""
        return bool(self._template) and not self._queue

    @property
    def completion_ratio(self) -> float:
        if not self._template:
            return 0.0
        return (len(self._template) - len(self._queue)) / len(self._template)

    def __len__(self) -> int:
        return len(self._queue)
