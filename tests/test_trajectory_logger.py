"""Tests for trajectory logging."""

import json

import numpy as np
import pytest

from ltl_gridworld.environment.episode import TerminationReason
from ltl_gridworld.environment.goals import GoalType
from ltl_gridworld.environment.grid_world import Action
from ltl_gridworld.environment.trajectory_logger import (
    EpisodeRecord,
    TrajectoryLogger,
    to_json_value,
)


def record_env_episode(logger, env, actions):
    obs, info = env.reset(seed=0)
    logger.start_episode(info["goal_sequence"])
    for action in actions:
        obs, reward, terminated, truncated, info = env.step(action)
        logger.log_step(obs, action, reward, info)
        if terminated or truncated:
            break
    return logger.end_episode(info)


class TestTrajectoryLogger:

    def test_records_env_episode(self, tmp_path, env):
        logger = TrajectoryLogger(str(tmp_path))
        episode = record_env_episode(logger, env, [Action.RIGHT, Action.UP] * 3)

        assert episode.success
        assert episode.num_steps == 6
        assert episode.termination_reason == "success"
        assert episode.completion_ratio == 1.0
        assert episode.achieved_goals == ["GreenPlus", "RedEx", "YellowStar"]
        assert episode.actions == [4, 1, 4, 1, 4, 1]

        first, second = episode.steps[:2]
        assert first.action_name == "right"
        assert first.position == [2, 1]
        assert first.current_goal == "RedEx"
        assert second.reward_terms["goal"] == pytest.approx(1.0)
        assert second.current_goal == "YellowStar"
        assert episode.total_reward == pytest.approx(sum(s.reward for s in episode.steps))

    def test_file_round_trip(self, tmp_path, env):
        logger = TrajectoryLogger(str(tmp_path))
        record_env_episode(logger, env, [Action.RIGHT, Action.UP] * 3)
        record_env_episode(logger, env, [Action.NOOP] * 3)

        loaded = logger.load_all()
        assert [ep.episode_id for ep in loaded] == [0, 1]
        assert isinstance(loaded[0], EpisodeRecord)
        assert len(loaded[0].steps[0].observation) == 39
        assert loaded[0].steps[1].reward_terms["goal"] == pytest.approx(1.0)
        assert len(logger.load_successful()) == 1
        assert logger.load_by_reason("success")[0].episode_id == 0

        # A second logger on the same file continues numbering
        again = TrajectoryLogger(str(tmp_path))
        assert again.start_episode(["RedEx"]) == 2

    def test_stats(self, tmp_path, env):
        logger = TrajectoryLogger(str(tmp_path))
        assert logger.get_stats() == {"total_episodes": 0}

        record_env_episode(logger, env, [Action.RIGHT, Action.UP] * 3)
        record_env_episode(logger, env, [Action.NOOP] * 2)

        stats = logger.get_stats()
        assert stats["total_episodes"] == 2
        assert stats["success_rate"] == 0.5
        assert stats["goal_completion"] == 0.5
        assert stats["avg_steps"] == 4.0
        assert stats["termination_reasons"] == {"success": 1, "unfinished": 1}

    def test_metadata_is_json_clean(self, tmp_path):
        logger = TrajectoryLogger(str(tmp_path), filename="clean.jsonl")
        logger.start_episode(["RedEx"], metadata={"seed": np.int64(3), "goal": GoalType.RedEx})
        logger.log_step(np.zeros(15, dtype=np.float32), np.int64(2), np.float32(0.5), {})
        logger.end_episode({"success": False})

        record = json.loads((tmp_path / "clean.jsonl").read_text().strip())
        assert record["metadata"] == {"seed": 3, "goal": "RedEx"}
        assert record["steps"][0]["action_name"] == "action_2"
        assert record["num_steps"] == 1

    def test_step_without_episode_raises(self, tmp_path):
        logger = TrajectoryLogger(str(tmp_path))
        with pytest.raises(RuntimeError):
            logger.log_step([0, 0], 0, 0.0, {})
        with pytest.raises(RuntimeError):
            logger.end_episode({})


def test_to_json_value():
    value = {
        "reason": TerminationReason.STAGNATION,
        "cells": {(1, 1)},
        "flag": np.bool_(True),
        "arr": np.arange(3),
        1: np.float64(0.25),
    }
    assert to_json_value(value) == {
        "reason": "STAGNATION",
        "cells": [[1, 1]],
        "flag": True,
        "arr": [0, 1, 2],
        "1": 0.25,
    }
