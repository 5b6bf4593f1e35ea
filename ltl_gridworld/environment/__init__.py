# =============================================================================
# Environment Module
# =============================================================================
"""
The goal-sequencing grid world.

This module provides:
- GoalType: the goal catalog (GreenPlus, RedEx, YellowStar)
- GoalSequenceQueue: ordered goals still to reach
- EpisodeStateMachine: step limits and termination
- RewardShaper: per-step shaping and terminal rewards
- LTLGoalChannel: goal updates from the external trainer
- LTLGridEnv: the gymnasium environment tying it together
- TrajectoryLogger: episode logging in JSONL format

The environment is registered with gymnasium as "LTLGridWorld-v0".
"""

import gymnasium as gym

from ltl_gridworld.environment.goals import GoalType, parse_ltl_goal
from ltl_gridworld.environment.goal_queue import GoalSequenceQueue
from ltl_gridworld.environment.episode import (
    EpisodeState,
    EpisodeStateMachine,
    TerminationReason,
)
from ltl_gridworld.environment.grid_world import Action, AgentState, GridWorld, WorldGoalInstance
from ltl_gridworld.environment.reward_shaper import RewardShaper, RewardTerms
from ltl_gridworld.environment.goal_channel import LTLGoalChannel
from ltl_gridworld.environment.ltl_grid_env import LTLGridEnv, make_env
from ltl_gridworld.environment.trajectory_logger import TrajectoryLogger

ENV_ID = "LTLGridWorld-v0"

if ENV_ID not in gym.envs.registry:
    gym.register(id=ENV_ID, entry_point="ltl_gridworld.environment.ltl_grid_env:LTLGridEnv")

__all__ = [
    "Action",
    "AgentState",
    "ENV_ID",
    "EpisodeState",
    "EpisodeStateMachine",
    "GoalSequenceQueue",
    "GoalType",
    "GridWorld",
    "LTLGoalChannel",
    "LTLGridEnv",
    "RewardShaper",
    "RewardTerms",
    "TerminationReason",
    "TrajectoryLogger",
    "WorldGoalInstance",
    "make_env",
    "parse_ltl_goal",
]
