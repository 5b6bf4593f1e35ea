"""Tests for experiment configuration."""

from pathlib import Path

import pytest
import yaml

from ltl_gridworld.config import (
    EnvironmentConfig,
    ExperimentConfig,
    RewardConfig,
    create_default_config,
    load_config,
)

REPO_ROOT = Path(__file__).resolve().parent.parent


class TestExperimentConfig:

    def test_yaml_round_trip(self, tmp_path):
        config = create_default_config("roundtrip")
        config.environment.walls = [(0, 3), (1, 3)]
        config.environment.__post_init__()
        path = tmp_path / "nested" / "config.yaml"

        config.save(str(path))
        loaded = load_config(str(path))

        assert loaded == config
        assert loaded.environment.agent_start == (1, 1)
        assert loaded.environment.walls == [(0, 3), (1, 3)]

    def test_saved_yaml_is_plain(self, tmp_path):
        path = tmp_path / "config.yaml"
        create_default_config().save(str(path))
        text = path.read_text()

        assert "!!python" not in text
        assert yaml.safe_load(text)["environment"]["goal_positions"]["RedEx"] == [2, 2]

    def test_shipped_default_matches_dataclasses(self):
        loaded = load_config(str(REPO_ROOT / "configs" / "default.yaml"))
        assert loaded.environment == EnvironmentConfig()
        assert loaded.environment.reward == RewardConfig()

    def test_partial_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("name: small\nenvironment:\n  grid_size: 7\n  reward:\n    goal_reward: 2.0\n")

        loaded = load_config(str(path))
        assert loaded.name == "small"
        assert loaded.environment.grid_size == 7
        assert loaded.environment.reward.goal_reward == 2.0
        assert loaded.environment.reward.step_penalty == RewardConfig().step_penalty
        assert loaded.training.learning_rate == ExperimentConfig().training.learning_rate

    def test_load_validates(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("environment:\n  grid_size: 3\n")
        with pytest.raises(ValueError, match="not a free cell"):
            load_config(str(path))


class TestEnvironmentConfigValidation:

    def test_defaults_are_valid(self):
        EnvironmentConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"grid_size": 1},
        {"max_steps": 0},
        {"max_steps_without_progress": 0},
        {"agent_start": (-1, 0)},
        {"walls": [(1, 1)]},
        {"goal_positions": {"RedEx": (5, 0)}},
        {"goal_positions": {"BlueCircle": (0, 0)}},
        {"goal_positions": {"RedEx": (1, 1)}},
        {"goal_positions": {"RedEx": (2, 2), "GreenPlus": (2, 2)}},
        {"wander_probability": 1.5},
        {"default_sequence": ["RedEx", "Purple"]},
        {"reward": RewardConfig(powerup_goal="Nope")},
    ])
    def test_invalid_configs(self, overrides):
        with pytest.raises(ValueError):
            EnvironmentConfig(**overrides).validate()

    def test_powerup_can_be_disabled(self):
        EnvironmentConfig(reward=RewardConfig(powerup_goal=None)).validate()

    def test_layout_errors_name_the_conflict(self):
        with pytest.raises(ValueError, match="on agent_start"):
            EnvironmentConfig(goal_positions={"RedEx": (1, 1)}).validate()
        with pytest.raises(ValueError, match="share cell"):
            EnvironmentConfig(goal_positions={"RedEx": (2, 2), "GreenPlus": (2, 2)}).validate()

    def test_sampled_layout_ignores_fixed_cells(self):
        EnvironmentConfig(
            randomize_goals=True,
            goal_positions={"RedEx": (1, 1), "GreenPlus": (1, 1)},
        ).validate()

    def test_reward_dict_is_converted(self):
        config = EnvironmentConfig(reward={"goal_reward": 2.0})
        assert config.reward == RewardConfig(goal_reward=2.0)
        config.validate()
