# =============================================================================
# Grid World
# =============================================================================
"""
The physical side of the environment: walls, the agent and goal objects.

Coordinates are (x, y) cells with the origin in the bottom-left corner.
Cells outside the grid and configured wall cells block movement.

ACTION SPACE:
0: No-op
1: Up    (+y)
2: Down  (-y)
3: Left  (-x)
4: Right (+x)
"""

from dataclasses import dataclass, field
from enum import IntEnum
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from ltl_gridworld.config import EnvironmentConfig
from ltl_gridworld.environment.goals import GoalType

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


class Action(IntEnum):
    NOOP = 0
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4


ACTION_DELTAS: Dict[Action, Cell] = {
    Action.NOOP: (0, 0),
    Action.UP: (0, 1),
    Action.DOWN: (0, -1),
    Action.LEFT: (-1, 0),
    Action.RIGHT: (1, 0),
}

WANDER_STEPS: List[Cell] = [(0, 1), (0, -1), (-1, 0), (1, 0)]


@dataclass
class WorldGoalInstance:
    """A goal object placed in the world."""
    goal_type: GoalType
    position: Cell


@dataclass
class AgentState:
    """
    Everything the environment tracks about the agent within an episode.

    Attributes:
    -----------
    position : tuple
        Current cell
    powerup : bool
        Set once the powerup goal was touched out of turn
    cumulative_reward : float
        Sum of rewards this episode
    closest_distance : float, optional
        Closest distance reached to the current target
    visited_cells : set
        Discretised cells already rewarded for exploration
    last_action, repeat_count : int
        Current run of identical actions
    """
    position: Cell = (0, 0)
    powerup: bool = False
    cumulative_reward: float = 0.0
    closest_distance: Optional[float] = None
    visited_cells: Set[Cell] = field(default_factory=set)
    last_action: Optional[int] = None
    repeat_count: int = 0


class GridWorld:
    """
    Walls, agent position and the live goal objects.

    The world owns the goal instances; the environment only looks them up
    by type when it needs distances.
    """

    def __init__(self, config: EnvironmentConfig):
        self.config = config
        self.size = config.grid_size
        self.walls: Set[Cell] = set(config.walls)
        self.agent_position: Cell = tuple(config.agent_start)
        self.goals: Dict[GoalType, WorldGoalInstance] = {}
        self._layout: Dict[GoalType, Cell] = {}
        self._rng = np.random.default_rng()

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------
    def reset(self, rng: Optional[np.random.Generator] = None) -> None:
        """Remove all goals, place the agent at its start and spawn goals again."""
        self.goals.clear()
        self.agent_position = tuple(self.config.agent_start)
        if rng is not None:
            self._rng = rng

        if self.config.randomize_goals:
            self._layout = self._sample_layout(self._rng)
        else:
            self._layout = {
                GoalType.from_name(name): tuple(pos)
                for name, pos in self.config.goal_positions.items()
            }

        for goal_type, pos in self._layout.items():
            self.goals[goal_type] = WorldGoalInstance(goal_type, pos)

    def _sample_layout(self, rng: np.random.Generator) -> Dict[GoalType, Cell]:
        free = [
            (x, y)
            for x in range(self.size)
            for y in range(self.size)
            if (x, y) not in self.walls and (x, y) != self.agent_position
        ]
        goal_types = [GoalType.from_name(name) for name in self.config.goal_positions]
        if len(free) < len(goal_types):
            raise ValueError("not enough free cells to place goals")
        picks = rng.choice(len(free), size=len(goal_types), replace=False)
        return {g: free[int(i)] for g, i in zip(goal_types, picks)}

    def respawn(self, goal_types: Iterable[GoalType]) -> None:
        """Put back consumed goals at their episode layout position."""
        for goal_type in goal_types:
            if goal_type in self.goals or goal_type not in self._layout:
                continue
            pos = self._layout[goal_type]
            if self._goal_at(pos) is not None:
                continue
            self.goals[goal_type] = WorldGoalInstance(goal_type, pos)

    def remove_goal(self, goal_type: GoalType) -> None:
        self.goals.pop(goal_type, None)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def is_free(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.size and 0 <= y < self.size and cell not in self.walls

    def _goal_at(self, cell: Cell) -> Optional[GoalType]:
        for goal in self.goals.values():
            if goal.position == cell:
                return goal.goal_type
        return None

    def goal_position(self, goal_type: Optional[GoalType]) -> Optional[Cell]:
        if goal_type is None:
            return None
        goal = self.goals.get(goal_type)
        return goal.position if goal is not None else None

    def distance_to(self, goal_type: Optional[GoalType]) -> Optional[float]:
        """Euclidean distance from the agent, or None if the goal is not in the world."""
        pos = self.goal_position(goal_type)
        if pos is None:
            return None
        return float(np.hypot(pos[0] - self.agent_position[0], pos[1] - self.agent_position[1]))

    def goals_within(self, radius: float) -> List[GoalType]:
        """Goal types within radius of the agent, in catalog order."""
        return [g for g in GoalType if g in self.goals and self.distance_to(g) <= radius]

    def optimal_path_length(self, sequence: Iterable[GoalType]) -> int:
        """Manhattan length of visiting the sequence in order from the agent's cell."""
        total = 0
        current = self.agent_position
        for goal_type in sequence:
            pos = self.goal_position(goal_type) or self._layout.get(goal_type)
            if pos is None:
                continue
            total += abs(pos[0] - current[0]) + abs(pos[1] - current[1])
            current = pos
        return total

    # -------------------------------------------------------------------------
    # Dynamics
    # -------------------------------------------------------------------------
    def move_agent(self, action: int) -> Tuple[bool, bool]:
        """
        Try to move the agent one cell.

        Returns:
        --------
        (moved, blocked)
            blocked is True when a real move hit a wall or the grid edge
        """
        dx, dy = ACTION_DELTAS[Action(action)]
        if dx == 0 and dy == 0:
            return False, False

        target = (self.agent_position[0] + dx, self.agent_position[1] + dy)
        if not self.is_free(target):
            return False, True

        self.agent_position = target
        return True, False

    def move_goals(self) -> None:
        """
        Goals near the agent step one cell directly away from it, if they can.

        Goals outside detection_radius wander to a random free neighbour
        with probability wander_probability, drawn from the episode RNG.
        """
        if not self.config.moving_goals:
            return

        ax, ay = self.agent_position
        for goal in list(self.goals.values()):
            gx, gy = goal.position
            if np.hypot(gx - ax, gy - ay) >= self.config.detection_radius:
                if self.config.wander_probability > 0 and (
                    self._rng.random() < self.config.wander_probability
                ):
                    order = self._rng.permutation(len(WANDER_STEPS))
                    self._step_goal(goal, [WANDER_STEPS[int(i)] for i in order])
                continue

            # Dominant axis first, ties go to x
            dx, dy = int(np.sign(gx - ax)), int(np.sign(gy - ay))
            if abs(gx - ax) >= abs(gy - ay):
                candidates = [(dx, 0), (0, dy)]
            else:
                candidates = [(0, dy), (dx, 0)]
            self._step_goal(goal, candidates)

    def _step_goal(self, goal: WorldGoalInstance, candidates: Iterable[Cell]) -> None:
        gx, gy = goal.position
        for cx, cy in candidates:
            if cx == 0 and cy == 0:
                continue
            target = (gx + cx, gy + cy)
            if (
                self.is_free(target)
                and target != self.agent_position
                and self._goal_at(target) is None
            ):
                goal.position = target
                return
