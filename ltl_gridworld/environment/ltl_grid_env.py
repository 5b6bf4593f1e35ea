# =============================================================================
# LTL Grid Environment
# =============================================================================
"""
Gymnasium environment for goal sequencing in a grid world.

The agent has to reach goal objects in the order given by a goal
sequence. The sequence comes from the external trainer through the
LTLGoalChannel, or from the config when the trainer never sends one.

Key Concepts:
-------------

OBSERVATION SPACE:
A flat float32 vector:
- [0:2]   agent (x, y)
- [2:5]   one-hot current target goal
- [5]     powerup flag
- [6:9]   one-hot achieved goals
- [9:15]  (x, y) of GreenPlus, RedEx, YellowStar (zeros once removed)
- [15:39] zone vector of the current goal (only with include_zone_vector)

ACTION SPACE:
0: No-op
1: Up
2: Down
3: Left
4: Right

EPISODE END:
- terminated: whole sequence achieved, or no progress for too long
- truncated: max_steps reached

REWARD:
See reward_shaper.py. Shaping terms for every step are returned in
info["reward_terms"].
"""

from dataclasses import fields
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import gymnasium as gym
from gymnasium import spaces
import numpy as np

from ltl_gridworld.config import EnvironmentConfig
from ltl_gridworld.environment.episode import EpisodeStateMachine, TerminationReason
from ltl_gridworld.environment.goal_channel import LTLGoalChannel
from ltl_gridworld.environment.goal_queue import GoalSequenceQueue
from ltl_gridworld.environment.goals import ZONE_VECTOR_SIZE, GoalType, one_hot
from ltl_gridworld.environment.grid_world import Action, AgentState, GridWorld
from ltl_gridworld.environment.reward_shaper import RewardShaper, RewardTerms

logger = logging.getLogger(__name__)

BASE_OBS_SIZE = 2 + 3 + 1 + 3 + 2 * len(GoalType)


class LTLGridEnv(gym.Env):
    """
    Single-agent grid world with externally sequenced goals.

    Example:
    --------
    >>> env = LTLGridEnv()
    >>> env.goal_channel.push_ltl_goal("F red")
    >>> obs, info = env.reset(seed=0)
    >>> info["current_goal"]
    'RedEx'
    >>> obs, reward, terminated, truncated, info = env.step(Action.RIGHT)
    """

    metadata = {"render_modes": []}

    ACTION_NAMES = [a.name.lower() for a in Action]

    def __init__(
        self,
        config: Optional[Union[EnvironmentConfig, Dict[str, Any]]] = None,
        seed: Optional[int] = None,
    ):
        """
        Parameters:
        -----------
        config : EnvironmentConfig or dict, optional
            Environment settings. A dict is accepted so that RLlib can
            pass its env_config straight through.
        seed : int, optional
            Seed for the first reset() if that call passes none.
        """
        super().__init__()

        if config is None:
            config = EnvironmentConfig()
        elif isinstance(config, dict):
            config = EnvironmentConfig.from_dict(config)
        config.validate()

        self.config = config
        self._seed = seed

        self.world = GridWorld(config)
        self.goal_queue = GoalSequenceQueue(
            [GoalType.from_name(name) for name in config.default_sequence]
        )
        self.episode = EpisodeStateMachine(
            max_steps=config.max_steps,
            max_steps_without_progress=config.max_steps_without_progress,
        )
        self.shaper = RewardShaper(config.reward)
        self.agent = AgentState(position=tuple(config.agent_start))

        self.goal_channel = LTLGoalChannel(self)
        self.goal_channel.mark_applied(self.goal_queue.template)

        self._powerup_goal = (
            GoalType.from_name(config.reward.powerup_goal)
            if config.reward.powerup_goal is not None
            else None
        )

        obs_size = BASE_OBS_SIZE + (ZONE_VECTOR_SIZE if config.include_zone_vector else 0)
        self.observation_space = spaces.Box(
            low=0.0,
            high=float(max(config.grid_size - 1, 1)),
            shape=(obs_size,),
            dtype=np.float32,
        )
        self.action_space = spaces.Discrete(len(Action))

    # -------------------------------------------------------------------------
    # Gymnasium API
    # -------------------------------------------------------------------------
    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Start a new episode.

        options["goal_sequence"] may hold goal names, GoalTypes or codes;
        it goes through the goal channel like any trainer message.
        """
        # Constructor seed only seeds the first reset
        reset_seed = seed if seed is not None else self._seed
        self._seed = None
        super().reset(seed=reset_seed)

        if options and options.get("goal_sequence") is not None:
            codes = _to_codes(options["goal_sequence"])
            if codes is not None:
                self.goal_channel.push_sequence(codes)

        self.world.reset(self.np_random)
        self.agent = AgentState(position=self.world.agent_position)
        self.goal_queue.restart()
        self.episode.begin()

        self.goal_channel.apply_pending()

        self.shaper.exploration(self.agent)
        self.agent.closest_distance = self.world.distance_to(self.goal_queue.peek_current())

        return self._get_obs(), self._get_info()

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Advance one step.

        Returns:
        --------
        observation, reward, terminated, truncated, info

        Raises:
        -------
        ValueError
            If action is not in the action space; nothing changes.
        """
        if not self.action_space.contains(action):
            raise ValueError(f"invalid action {action!r}")

        if not self.episode.is_running:
            logger.warning("step() called on an ended episode; call reset()")
            terminated, truncated = self._done_flags()
            return self._get_obs(), 0.0, terminated, truncated, self._get_info()

        action = int(action)
        self.goal_channel.apply_pending()

        terms = RewardTerms()
        terms.step = self.shaper.step_penalty()
        terms.repeat = self.shaper.repeat_action(self.agent, action)

        target = self.goal_queue.peek_current()
        prev_distance = self.world.distance_to(target)

        moved, blocked = self.world.move_agent(action)
        self.agent.position = self.world.agent_position
        terms.movement, terms.wall = self.shaper.movement(moved, blocked)

        new_distance = self.world.distance_to(target)
        terms.distance, terms.closest, progress = self.shaper.distance(
            self.agent, prev_distance, new_distance
        )
        terms.exploration = self.shaper.exploration(self.agent)

        off_target = []
        nearby = self.world.goals_within(self.config.reward.goal_radius)
        if target is not None and target in nearby:
            terms.goal = self.shaper.goal_reached(self.agent)
            self._achieve(target)
            progress = True
        else:
            pending = self.goal_queue.remaining
            off_target = [g for g in nearby if g in pending]
            if self._powerup_goal is not None and self._powerup_goal in nearby:
                terms.powerup = self.shaper.powerup_pickup(self.agent)

        self.world.move_goals()
        if self.config.moving_goals:
            # Goal may have stepped away; keep the tracker consistent
            current = self.world.distance_to(self.goal_queue.peek_current())
            if current is not None and self.agent.closest_distance is not None:
                self.agent.closest_distance = min(self.agent.closest_distance, current)

        self.episode.record_step(progress)
        reason = self.episode.check(self.goal_queue.is_exhausted)
        if reason is not None and self.episode.terminate(reason):
            terms.terminal = self.shaper.terminal_reward(
                reason, self.goal_queue.completion_ratio
            )

        reward = terms.total()
        self.agent.cumulative_reward += reward

        terminated, truncated = self._done_flags()
        info = self._get_info()
        info["action_name"] = self.ACTION_NAMES[action]
        info["reward_terms"] = terms.to_dict()
        info["wall_hit"] = blocked
        info["off_target_goals"] = [g.name for g in off_target]

        return self._get_obs(), reward, terminated, truncated, info

    # -------------------------------------------------------------------------
    # Goal handling
    # -------------------------------------------------------------------------
    def apply_goal_sequence(self, goals: Iterable[GoalType]) -> bool:
        """
        Replace the goal sequence. Called by the goal channel.

        Mid-episode, consumed goal objects that the new sequence needs are
        put back and the closest-distance tracker restarts.
        """
        goals = tuple(goals)
        if not self.goal_queue.set_sequence(goals):
            return False

        if self.episode.is_running:
            self.world.respawn(goals)
            self.agent.closest_distance = self.world.distance_to(self.goal_queue.peek_current())
        return True

    def _achieve(self, goal: GoalType) -> None:
        new_target = self.goal_queue.advance()
        if goal not in self.goal_queue.remaining:
            self.world.remove_goal(goal)
        self.agent.closest_distance = self.world.distance_to(new_target)
        self.goal_channel.send_ltl_goal(f"achieved:{goal.name}")
        logger.debug(
            "Reached %s at step %d, next goal %s",
            goal.name, self.episode.step_count + 1,
            new_target.name if new_target else None,
        )

    # -------------------------------------------------------------------------
    # Observations
    # -------------------------------------------------------------------------
    def _get_obs(self) -> np.ndarray:
        current = self.goal_queue.peek_current()

        goal_positions = np.zeros(2 * len(GoalType), dtype=np.float32)
        for goal in GoalType:
            pos = self.world.goal_position(goal)
            if pos is not None:
                goal_positions[2 * goal.code:2 * goal.code + 2] = pos

        parts = [
            np.asarray(self.agent.position, dtype=np.float32),
            one_hot(current),
            np.array([1.0 if self.agent.powerup else 0.0], dtype=np.float32),
            one_hot(self.goal_queue.achieved),
            goal_positions,
        ]
        if self.config.include_zone_vector:
            parts.append(
                current.zone_vector if current is not None
                else np.zeros(ZONE_VECTOR_SIZE, dtype=np.float32)
            )
        return np.concatenate(parts).astype(np.float32)

    def _done_flags(self) -> Tuple[bool, bool]:
        reason = self.episode.reason
        terminated = reason in (TerminationReason.SUCCESS, TerminationReason.STAGNATION)
        truncated = reason is TerminationReason.TIMEOUT
        return terminated, truncated

    def _get_info(self) -> Dict[str, Any]:
        current = self.goal_queue.peek_current()
        reason = self.episode.reason
        return {
            "step": self.episode.step_count,
            "current_goal": current.name if current else None,
            "goal_sequence": [g.name for g in self.goal_queue.template],
            "remaining_goals": [g.name for g in self.goal_queue.remaining],
            "achieved_goals": sorted(g.name for g in self.goal_queue.achieved),
            "completion_ratio": self.goal_queue.completion_ratio,
            "powerup": self.agent.powerup,
            "cumulative_reward": self.agent.cumulative_reward,
            "ltl_goal": self.goal_channel.current_ltl_goal,
            "termination_reason": reason.value if reason else None,
            "success": reason is TerminationReason.SUCCESS,
        }

    def get_state_info(self) -> Dict[str, Any]:
        """Snapshot of the agent and its goal, for debugging."""
        current = self.goal_queue.peek_current()
        return {
            "position": self.agent.position,
            "current_goal": current,
            "ltl_goal": self.goal_channel.current_ltl_goal,
            "goal_vector": current.zone_vector if current is not None else None,
        }

    def optimal_path_length(self) -> int:
        """Shortest Manhattan route through the remaining goals from the agent."""
        return self.world.optimal_path_length(self.goal_queue.remaining)


def _to_codes(goals) -> Optional[List[int]]:
    """Goal names, GoalTypes or codes as wire codes; None if a name is unknown."""
    goals = list(goals)
    codes = []
    for g in goals:
        if isinstance(g, GoalType):
            codes.append(g.code)
        elif isinstance(g, str):
            try:
                codes.append(GoalType.from_name(g).code)
            except ValueError as e:
                logger.error("Ignoring goal sequence %r: %s", goals, e)
                return None
        else:
            codes.append(g)
    return codes


# =============================================================================
# Convenience functions
# =============================================================================

def make_env(**kwargs) -> LTLGridEnv:
    """
    Create the environment with keyword overrides of EnvironmentConfig.

    A passed config is copied, never modified. reward may be a dict of
    RewardConfig overrides.

    >>> env = make_env(grid_size=7, moving_goals=True)
    >>> env = make_env(reward={"goal_reward": 3.0})
    """
    config = kwargs.pop("config", None) or EnvironmentConfig()
    seed = kwargs.pop("seed", None)

    known = {f.name for f in fields(EnvironmentConfig)}
    for key in kwargs:
        if key not in known:
            raise ValueError(f"unknown environment option {key!r}")

    values = config.to_dict()
    if isinstance(kwargs.get("reward"), dict):
        kwargs["reward"] = {**values["reward"], **kwargs["reward"]}
    values.update(kwargs)
    return LTLGridEnv(EnvironmentConfig.from_dict(values), seed=seed)
