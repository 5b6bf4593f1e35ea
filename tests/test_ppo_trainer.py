"""Tests for the RLlib training entry points."""

import pytest

from ltl_gridworld.config import ExperimentConfig
from ltl_gridworld.training import RLLIB_AVAILABLE, PPOTrainer, create_ppo_config


@pytest.mark.skipif(RLLIB_AVAILABLE, reason="RLlib is installed")
class TestWithoutRLlib:

    def test_config_needs_rllib(self):
        with pytest.raises(ImportError, match="RLlib not installed"):
            create_ppo_config(ExperimentConfig())

    def test_trainer_needs_rllib(self):
        with pytest.raises(ImportError):
            PPOTrainer(ExperimentConfig())


@pytest.mark.skipif(not RLLIB_AVAILABLE, reason="RLlib not installed")
class TestWithRLlib:

    def test_env_config_is_plain_dict(self):
        config = ExperimentConfig(seed=7)
        config.environment.grid_size = 6

        ppo_config = create_ppo_config(config)
        assert ppo_config.env_config["grid_size"] == 6
        assert ppo_config.env_config["agent_start"] == [1, 1]
        assert ppo_config.seed == 7


def test_extract_metrics_new_and_old_result_layouts():
    from ltl_gridworld.training.ppo_trainer import extract_metrics

    new_style = {
        "env_runners": {"episode_return_mean": 1.5, "episode_len_mean": 12.0},
        "num_env_steps_sampled_lifetime": 4000,
    }
    assert extract_metrics(new_style) == {
        "episode_return_mean": 1.5,
        "episode_len_mean": 12.0,
        "timesteps_total": 4000,
    }

    old_style = {"episode_reward_mean": -0.5, "episode_len_mean": 30, "timesteps_total": 100}
    assert extract_metrics(old_style)["episode_return_mean"] == -0.5
    assert extract_metrics(old_style)["timesteps_total"] == 100

    # Early iterations report no episodes yet
    assert extract_metrics({"env_runners": {"episode_return_mean": None}})["episode_return_mean"] == 0.0
