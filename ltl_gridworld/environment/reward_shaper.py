# =============================================================================
# Reward Shaper
# =============================================================================
"""
Per-step reward terms for the goal-sequencing task.

Reaching goals in order is a sparse signal, so each step also carries
small shaping terms:

- STEP: constant penalty, every step
- MOVEMENT: small reward when the position actually changed
- WALL: penalty when the attempted move was blocked
- DISTANCE: distance_scale * (previous - new distance to the current goal),
  plus a bonus whenever the agent gets closer than it has ever been
- EXPLORATION: bonus for entering a discretised cell for the first time
- REPEAT: penalty growing with the length of a run of identical actions
- GOAL: reaching the current target (boosted while powered up)
- POWERUP: one-off bonus for touching the powerup goal out of turn
- TERMINAL: completion bonus, or a penalty scaled by what was left undone

Terms are independent and simply summed.
"""

from dataclasses import dataclass, asdict
import logging
from typing import Dict, Optional, Tuple

import numpy as np

from ltl_gridworld.config import RewardConfig
from ltl_gridworld.environment.episode import TerminationReason
from ltl_gridworld.environment.grid_world import AgentState

logger = logging.getLogger(__name__)


@dataclass
class RewardTerms:
    step: float = 0.0
    movement: float = 0.0
    wall: float = 0.0
    distance: float = 0.0
    closest: float = 0.0
    exploration: float = 0.0
    repeat: float = 0.0
    goal: float = 0.0
    powerup: float = 0.0
    terminal: float = 0.0

    def total(self) -> float:
        return float(sum(asdict(self).values()))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class RewardShaper:
    """
    Computes reward terms and keeps the per-episode trackers in AgentState
    up to date (closest distance, visited cells, action repeats).

    Example:
    --------
    >>> shaper = RewardShaper(RewardConfig())
    >>> terms = RewardTerms()
    >>> terms.step = shaper.step_penalty()
    >>> terms.movement, terms.wall = shaper.movement(moved=True, blocked=False)
    """

    def __init__(self, config: RewardConfig):
        self.config = config

    def step_penalty(self) -> float:
        return -self.config.step_penalty

    def movement(self, moved: bool, blocked: bool) -> Tuple[float, float]:
        """Return (movement reward, wall penalty)."""
        movement = self.config.movement_reward if moved else 0.0
        wall = -self.config.wall_penalty if blocked else 0.0
        return movement, wall

    def repeat_action(self, agent: AgentState, action: int) -> float:
        """Update the repeat counter and penalise long runs of one action."""
        if action == agent.last_action:
            agent.repeat_count += 1
        else:
            agent.last_action = action
            agent.repeat_count = 1

        if agent.repeat_count > self.config.repeat_action_threshold:
            return -self.config.repeat_action_penalty * agent.repeat_count
        return 0.0

    def distance(
        self,
        agent: AgentState,
        prev_distance: Optional[float],
        new_distance: Optional[float],
    ) -> Tuple[float, float, bool]:
        """
        Distance shaping towards the current goal.

        Returns:
        --------
        (shaping, closest_bonus, improved)
            improved is True when a new closest distance was reached
        """
        if prev_distance is None or new_distance is None:
            return 0.0, 0.0, False

        shaping = self.config.distance_scale * (prev_distance - new_distance)

        if agent.closest_distance is None or new_distance < agent.closest_distance:
            agent.closest_distance = new_distance
            return shaping, self.config.closest_distance_bonus, True
        return shaping, 0.0, False

    def discretize(self, position) -> Tuple[int, int]:
        res = self.config.exploration_resolution
        pos = np.asarray(position, dtype=np.float64)
        return tuple(int(v) for v in np.round(pos / res))

    def exploration(self, agent: AgentState) -> float:
        """Bonus the first time a discretised cell is entered this episode."""
        cell = self.discretize(agent.position)
        if cell in agent.visited_cells:
            return 0.0
        agent.visited_cells.add(cell)
        return self.config.exploration_bonus

    def goal_reached(self, agent: AgentState) -> float:
        reward = self.config.goal_reward
        if agent.powerup:
            reward *= self.config.powerup_multiplier
        return reward

    def powerup_pickup(self, agent: AgentState) -> float:
        """Grant the powerup once per episode."""
        if agent.powerup:
            return 0.0
        agent.powerup = True
        logger.debug("Powerup collected at %s", agent.position)
        return self.config.powerup_bonus

    def terminal_reward(self, reason: TerminationReason, completion_ratio: float) -> float:
        """
        Terminal adjustment for the episode.

        SUCCESS pays the sequence completion bonus. Timeouts and stagnation
        pay a partial bonus for the completed fraction and a penalty for
        the fraction left undone.
        """
        if reason is TerminationReason.SUCCESS:
            return self.config.sequence_completion_bonus
        return (
            self.config.partial_completion_bonus * completion_ratio
            - self.config.incomplete_penalty * (1.0 - completion_ratio)
        )
