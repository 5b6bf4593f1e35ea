# =============================================================================
# PPO Trainer
# =============================================================================
"""
PPO (Proximal Policy Optimization) training with RLlib.

This module provides:
- PPO config construction for LTLGridEnv
- Training loop with periodic evaluation on the goal sequence
- Checkpoints that carry their own experiment config

Every RLlib env runner builds its own LTLGridEnv from a plain config dict,
so each worker has its own goal channel. The trainer never talks to the
channel; goal sequences come from EnvironmentConfig.default_sequence.

Training Loop:
--------------
for iteration in range(num_iterations):
    1. Collect rollouts with the current policy
    2. PPO update (GAE advantages, clipped objective)
    3. Every eval_freq iterations, run EvaluationSuite greedily
    4. Stop early once the target success rate is reached

RLlib is an optional dependency: pip install -e ".[rllib]"
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

try:
    import ray
    from ray.rllib.algorithms.ppo import PPO, PPOConfig
    RLLIB_AVAILABLE = True
except ImportError:
    RLLIB_AVAILABLE = False

from ltl_gridworld.config import ExperimentConfig

logger = logging.getLogger(__name__)

_INSTALL_HINT = "RLlib not installed. Run: pip install -e '.[rllib]'"


def create_ppo_config(config: ExperimentConfig) -> "PPOConfig":
    """Build the RLlib PPO configuration for an experiment."""
    if not RLLIB_AVAILABLE:
        raise ImportError(_INSTALL_HINT)

    from ltl_gridworld.environment.ltl_grid_env import LTLGridEnv

    training = config.training
    return (
        PPOConfig()
        .environment(
            env=LTLGridEnv,
            env_config=config.to_dict()["environment"],
        )
        .framework("torch")
        .env_runners(
            num_env_runners=training.num_workers,
            num_envs_per_env_runner=training.num_envs_per_worker,
        )
        .training(
            train_batch_size=training.train_batch_size,
            lr=training.learning_rate,
            gamma=training.gamma,
            clip_param=training.clip_param,
            num_sgd_iter=training.num_sgd_iter,
            entropy_coeff=training.entropy_coeff,
            use_gae=True,
            lambda_=0.95,
        )
        .debugging(seed=config.seed)
        .resources(num_gpus=0)
    )


def extract_metrics(result: Dict[str, Any]) -> Dict[str, float]:
    """Pull episode return, length and step count out of an RLlib result dict."""
    runners = result.get("env_runners", result)
    return {
        "episode_return_mean": float(
            runners.get("episode_return_mean", runners.get("episode_reward_mean", 0.0)) or 0.0
        ),
        "episode_len_mean": float(runners.get("episode_len_mean", 0.0) or 0.0),
        "timesteps_total": int(
            result.get("num_env_steps_sampled_lifetime", result.get("timesteps_total", 0)) or 0
        ),
    }


class PPOTrainer:
    """
    PPO training on the goal-sequencing grid world.

    Example:
    --------
    >>> config = ExperimentConfig(name="sequence_baseline")
    >>> trainer = PPOTrainer(config)
    >>> trainer.train(iterations=100, target_success_rate=0.9)
    >>> trainer.save("final")
    """

    def __init__(
        self,
        config: ExperimentConfig,
        checkpoint_path: Optional[str] = None,
    ):
        """
        Parameters:
        -----------
        config : ExperimentConfig
            Experiment configuration
        checkpoint_path : str, optional
            Checkpoint to resume from
        """
        if not RLLIB_AVAILABLE:
            raise ImportError(_INSTALL_HINT)

        self.config = config
        if not ray.is_initialized():
            ray.init(ignore_reinit_error=True)

        if checkpoint_path:
            self.algo = PPO.from_checkpoint(checkpoint_path)
            logger.info("Resumed from checkpoint %s", checkpoint_path)
        else:
            self.algo = create_ppo_config(config).build()

        self.history: List[Dict[str, Any]] = []
        self.checkpoint_dir = Path(config.checkpoint_dir) / config.name
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

    def train(
        self,
        iterations: int = 100,
        checkpoint_freq: int = 10,
        eval_freq: int = 0,
        eval_episodes: int = 20,
        target_success_rate: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run PPO training.

        Parameters:
        -----------
        iterations : int
            Maximum number of training iterations
        checkpoint_freq : int
            Save a checkpoint every N iterations
        eval_freq : int
            Evaluate every N iterations (0 disables)
        eval_episodes : int
            Episodes per evaluation
        target_success_rate : float, optional
            Stop once an evaluation reaches this success rate

        Returns:
        --------
        list
            Training history, one dict per iteration
        """
        print(f"Starting PPO training for up to {iterations} iterations")
        print(f"Goal sequence: {self.config.environment.default_sequence}")
        print(f"Checkpoints:   {self.checkpoint_dir}")
        print()

        for i in range(1, iterations + 1):
            entry = {"iteration": i, **extract_metrics(self.algo.train())}

            if eval_freq and i % eval_freq == 0:
                evaluation = self.evaluate(eval_episodes, verbose=False)
                entry["success_rate"] = evaluation["success_rate"]
                entry["goal_completion"] = evaluation["goal_completion"]

            self.history.append(entry)
            self._print_progress(entry, iterations)

            if checkpoint_freq and i % checkpoint_freq == 0:
                print(f"  Saved checkpoint: {self.save(f'checkpoint_{i:05d}')}")

            if (
                target_success_rate is not None
                and entry.get("success_rate", 0.0) >= target_success_rate
            ):
                print(f"\nReached success rate {entry['success_rate']:.1%}, stopping early")
                break

        print("\nTraining complete!")
        return self.history

    @staticmethod
    def _print_progress(entry: Dict[str, Any], iterations: int) -> None:
        line = (f"Iter {entry['iteration']}/{iterations}: "
                f"return={entry['episode_return_mean']:.2f}, "
                f"len={entry['episode_len_mean']:.1f}, "
                f"steps={entry['timesteps_total']}")
        if "success_rate" in entry:
            line += (f", success={entry['success_rate']:.1%}"
                     f", completion={entry['goal_completion']:.1%}")
        print(line)

    def save(self, name: str = "final") -> str:
        """Save a checkpoint with the training history and experiment config beside it."""
        result = self.algo.save(str((self.checkpoint_dir / name).resolve()))
        # Newer RLlib returns a TrainingResult rather than a path
        checkpoint = getattr(result, "checkpoint", None)
        path = str(checkpoint.path if checkpoint is not None else result)

        with open(self.checkpoint_dir / f"{name}_history.json", "w") as f:
            json.dump(self.history, f, indent=2)
        self.config.save(str(self.checkpoint_dir / f"{name}_config.yaml"))
        return path

    def policy_fn(self, obs: np.ndarray) -> int:
        """Greedy action from the trained policy."""
        return int(self.algo.compute_single_action(obs, explore=False))

    def evaluate(self, num_episodes: int = 100, verbose: bool = True) -> Dict[str, Any]:
        """Evaluate the greedy policy with EvaluationSuite."""
        from ltl_gridworld.evaluation.metrics import EvaluationSuite

        suite = EvaluationSuite(self.config.environment, seed=self.config.seed)
        return suite.evaluate(self.policy_fn, num_episodes=num_episodes, verbose=verbose)

    def shutdown(self) -> None:
        self.algo.stop()
        ray.shutdown()
