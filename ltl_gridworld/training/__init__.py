# =============================================================================
# Training Module
# =============================================================================
"""
RLlib PPO training for the goal-sequencing grid world.

RLlib is optional; importing this package works without it and
PPOTrainer raises ImportError with an install hint when it is missing.
"""

from ltl_gridworld.training.ppo_trainer import PPOTrainer, create_ppo_config, RLLIB_AVAILABLE

__all__ = ["PPOTrainer", "create_ppo_config", "RLLIB_AVAILABLE"]
