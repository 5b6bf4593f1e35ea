# =============================================================================
# Episode State Machine
# =============================================================================
"""
Tracks the life of one episode.

States:
-------
RUNNING      -> the agent is acting
TERMINATING  -> a termination condition fired; terminal reward is emitted
ENDED        -> nothing else happens until the next begin()

An episode ends when:
1. SUCCESS: the whole goal sequence was achieved
2. TIMEOUT: the step count reached max_steps
3. STAGNATION: too many steps without progress

Stepping is synchronous, so TERMINATING is passed through inside a single
terminate() call.
"""

from enum import Enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class EpisodeState(Enum):
    RUNNING = "running"
    TERMINATING = "terminating"
    ENDED = "ended"


class TerminationReason(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    STAGNATION = "stagnation"


class EpisodeStateMachine:
    """
    Step counting and termination for a single episode.

    Parameters:
    -----------
    max_steps : int
        Hard cap on steps per episode
    max_steps_without_progress : int
        Episode ends once this many consecutive steps made no progress
    """

    def __init__(self, max_steps: int, max_steps_without_progress: int):
        self.max_steps = max_steps
        self.max_steps_without_progress = max_steps_without_progress

        self.state = EpisodeState.ENDED
        self.step_count = 0
        self.steps_without_progress = 0
        self.reason: Optional[TerminationReason] = None

    def begin(self) -> None:
        """Start a new episode."""
        self.state = EpisodeState.RUNNING
        self.step_count = 0
        self.steps_without_progress = 0
        self.reason = None

    def record_step(self, progress: bool) -> None:
        if self.state is not EpisodeState.RUNNING:
            return
        self.step_count += 1
        if progress:
            self.steps_without_progress = 0
        else:
            self.steps_without_progress += 1

    def check(self, sequence_complete: bool) -> Optional[TerminationReason]:
        """Return the reason the episode should end now, if any."""
        if self.state is not EpisodeState.RUNNING:
            return None
        if sequence_complete:
            return TerminationReason.SUCCESS
        if self.step_count >= self.max_steps:
            return TerminationReason.TIMEOUT
        if self.steps_without_progress >= self.max_steps_without_progress:
            return TerminationReason.STAGNATION
        return None

    def terminate(self, reason: TerminationReason) -> bool:
        """
        End the episode.

        Returns True only for the call that actually ended it, so the
        caller can emit the terminal reward exactly once.
        """
        if self.state is not EpisodeState.RUNNING:
            return False
        self.state = EpisodeState.TERMINATING
        self.reason = reason
        logger.debug("Episode terminating after %d steps: %s", self.step_count, reason.value)
        self.state = EpisodeState.ENDED
        return True

    @property
    def is_running(self) -> bool:
        return self.state is EpisodeState.RUNNING

    @property
    def is_ended(self) -> bool:
        return self.state is EpisodeState.ENDED
