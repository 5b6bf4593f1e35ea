"""Tests for the reward shaper."""

import pytest

from ltl_gridworld.config import RewardConfig
from ltl_gridworld.environment.episode import TerminationReason
from ltl_gridworld.environment.grid_world import AgentState
from ltl_gridworld.environment.reward_shaper import RewardShaper, RewardTerms


@pytest.fixture
def config():
    return RewardConfig()


@pytest.fixture
def shaper(config):
    return RewardShaper(config)


class TestRewardShaper:

    def test_step_penalty_is_negative(self, shaper, config):
        assert shaper.step_penalty() == -config.step_penalty

    def test_movement_and_wall(self, shaper, config):
        assert shaper.movement(moved=True, blocked=False) == (config.movement_reward, 0.0)
        assert shaper.movement(moved=False, blocked=True) == (0.0, -config.wall_penalty)
        assert shaper.movement(moved=False, blocked=False) == (0.0, 0.0)

    def test_distance_shaping_and_closest_bonus(self, shaper, config):
        agent = AgentState(closest_distance=3.0)

        shaping, bonus, improved = shaper.distance(agent, 3.0, 2.0)
        assert shaping == pytest.approx(config.distance_scale)
        assert bonus == config.closest_distance_bonus
        assert improved
        assert agent.closest_distance == 2.0

        # Moving away, then back to the same distance: no new record
        shaping, bonus, improved = shaper.distance(agent, 2.0, 3.0)
        assert shaping == pytest.approx(-config.distance_scale)
        assert bonus == 0.0 and not improved
        _, bonus, improved = shaper.distance(agent, 3.0, 2.0)
        assert bonus == 0.0 and not improved

    def test_distance_without_goal(self, shaper):
        agent = AgentState()
        assert shaper.distance(agent, None, None) == (0.0, 0.0, False)

    def test_exploration_once_per_cell(self, shaper, config):
        agent = AgentState(position=(2, 1))
        assert shaper.exploration(agent) == config.exploration_bonus
        assert shaper.exploration(agent) == 0.0

        agent.position = (2, 2)
        assert shaper.exploration(agent) == config.exploration_bonus
        agent.position = (2, 1)
        assert shaper.exploration(agent) == 0.0
        assert len(agent.visited_cells) == 2

    def test_discretize_uses_resolution(self):
        shaper = RewardShaper(RewardConfig(exploration_resolution=0.5))
        assert shaper.discretize((1.2, 0.9)) == (2, 2)

    def test_repeat_action_penalty_above_threshold(self, shaper, config):
        agent = AgentState()
        threshold = config.repeat_action_threshold

        for _ in range(threshold):
            assert shaper.repeat_action(agent, 1) == 0.0

        penalty = shaper.repeat_action(agent, 1)
        assert penalty == pytest.approx(-config.repeat_action_penalty * (threshold + 1))

        # A different action breaks the run
        assert shaper.repeat_action(agent, 2) == 0.0
        assert agent.repeat_count == 1

    def test_goal_reward_boosted_by_powerup(self, shaper, config):
        agent = AgentState()
        assert shaper.goal_reached(agent) == config.goal_reward

        assert shaper.powerup_pickup(agent) == config.powerup_bonus
        assert shaper.powerup_pickup(agent) == 0.0
        assert shaper.goal_reached(agent) == pytest.approx(
            config.goal_reward * config.powerup_multiplier
        )

    def test_terminal_rewards(self, shaper, config):
        assert shaper.terminal_reward(TerminationReason.SUCCESS, 1.0) == \
            config.sequence_completion_bonus

        expected = (config.partial_completion_bonus / 3
                    - config.incomplete_penalty * (1 - 1 / 3))
        assert shaper.terminal_reward(TerminationReason.STAGNATION, 1 / 3) == \
            pytest.approx(expected)
        assert shaper.terminal_reward(TerminationReason.TIMEOUT, 0.0) == \
            pytest.approx(-config.incomplete_penalty)


def test_reward_terms_total():
    terms = RewardTerms(step=-0.1, goal=1.0, terminal=2.0)
    assert terms.total() == pytest.approx(2.9)
    assert terms.to_dict()["goal"] == 1.0
