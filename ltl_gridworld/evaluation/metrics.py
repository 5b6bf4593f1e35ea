# =============================================================================
# Evaluation Metrics
# =============================================================================
"""
Metrics for evaluating agent performance on goal sequences.
"""

from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from ltl_gridworld.config import EnvironmentConfig
from ltl_gridworld.environment.goals import GoalType


def compute_success_rate(successes: List[bool]) -> float:
    """Fraction of episodes that achieved the whole goal sequence."""
    if not successes:
        return 0.0
    return sum(successes) / len(successes)


def compute_goal_completion(completion_ratios: List[float]) -> float:
    """Mean fraction of the goal sequence achieved per episode."""
    if not completion_ratios:
        return 0.0
    return float(np.mean(completion_ratios))


def compute_spl(
    successes: List[bool],
    optimal_lengths: List[int],
    actual_lengths: List[int],
) -> float:
    """
    Success weighted by Path Length.

    An agent that finishes the sequence but wanders scores lower than one
    that walks the shortest route. Episodes whose shortest route is zero
    steps contribute nothing.

    Parameters:
    -----------
    successes : List[bool]
        Success flag per episode
    optimal_lengths : List[int]
        Manhattan route through the goal sequence per episode
    actual_lengths : List[int]
        Steps actually taken per episode

    Returns:
    --------
    float
        SPL score (0.0 to 1.0)
    """
    if not successes:
        return 0.0

    weighted = [
        optimal / max(optimal, actual, 1)
        for success, optimal, actual in zip(successes, optimal_lengths, actual_lengths)
        if success
    ]
    return sum(weighted) / len(successes)


def compute_goal_rates(
    sequences: List[List[str]],
    achieved: List[List[str]],
) -> Dict[str, float]:
    """
    How often each goal was achieved when it was asked for.

    Returns:
    --------
    dict
        Goal name -> achieved / requested, only for goals that were requested
    """
    requested = Counter()
    reached = Counter()
    for sequence, done in zip(sequences, achieved):
        for name in set(sequence):
            requested[name] += 1
            if name in done:
                reached[name] += 1

    return {
        goal.name: reached[goal.name] / requested[goal.name]
        for goal in GoalType
        if requested[goal.name]
    }


class EvaluationSuite:
    """
    Runs a policy on fresh episodes and computes all metrics.

    Example:
    --------
    >>> suite = EvaluationSuite(EnvironmentConfig(), goal_sequence=["RedEx", "GreenPlus"])
    >>> metrics = suite.evaluate(policy_fn, num_episodes=100)
    >>> print(f"Success rate: {metrics['success_rate']:.1%}")
    """

    def __init__(
        self,
        config: Optional[EnvironmentConfig] = None,
        goal_sequence: Optional[Sequence[str]] = None,
        seed: int = 42,
    ):
        """
        Parameters:
        -----------
        config : EnvironmentConfig, optional
            Environment to evaluate on
        goal_sequence : list of str, optional
            Sequence pushed at every reset; the config default otherwise
        seed : int
            Base seed; episode i uses seed + i
        """
        self.config = config or EnvironmentConfig()
        self.goal_sequence = list(goal_sequence) if goal_sequence else None
        self.seed = seed

    def _run_episode(self, env, policy_fn, seed: int, trajectory_logger=None) -> Dict[str, Any]:
        options = {"goal_sequence": self.goal_sequence} if self.goal_sequence else None
        obs, info = env.reset(seed=seed, options=options)
        optimal = env.optimal_path_length()
        if trajectory_logger is not None:
            trajectory_logger.start_episode(info["goal_sequence"], metadata={"seed": seed})

        actions = []
        off_target = []
        total_reward = 0.0
        terminated = truncated = False

        while not (terminated or truncated):
            action = int(policy_fn(obs))
            actions.append(action)
            obs, reward, terminated, truncated, info = env.step(action)
            total_reward += reward
            off_target.extend(info["off_target_goals"])
            if trajectory_logger is not None:
                trajectory_logger.log_step(obs, action, reward, info)

        if trajectory_logger is not None:
            trajectory_logger.end_episode(info)

        return {
            "goal_sequence": info["goal_sequence"],
            "achieved_goals": info["achieved_goals"],
            "completion_ratio": info["completion_ratio"],
            "termination_reason": info["termination_reason"],
            "success": info["success"],
            "reward": total_reward,
            "length": len(actions),
            "optimal_length": optimal,
            "max_steps": self.config.max_steps,
            "actions": actions,
            "off_target_goals": off_target,
        }

    def evaluate(
        self,
        policy_fn: Callable[[np.ndarray], int],
        num_episodes: int = 100,
        verbose: bool = True,
        trajectory_logger=None,
    ) -> Dict[str, Any]:
        """
        Run evaluation.

        Parameters:
        -----------
        policy_fn : callable
            Function that takes an observation vector and returns an action
        num_episodes : int
            Number of episodes to evaluate
        verbose : bool
            Print progress
        trajectory_logger : TrajectoryLogger, optional
            If given, every episode is recorded

        Returns:
        --------
        dict
            Evaluation metrics, plus per-episode data under "episodes"
        """
        from ltl_gridworld.environment.ltl_grid_env import LTLGridEnv

        env = LTLGridEnv(self.config)
        episodes = []
        for ep in range(num_episodes):
            episodes.append(self._run_episode(env, policy_fn, self.seed + ep, trajectory_logger))

            if verbose and (ep + 1) % 20 == 0:
                sr = compute_success_rate([e["success"] for e in episodes])
                print(f"Episode {ep+1}/{num_episodes}: Success rate = {sr:.1%}")
        env.close()

        successes = [e["success"] for e in episodes]
        rewards = [e["reward"] for e in episodes]
        lengths = [e["length"] for e in episodes]

        metrics = {
            "success_rate": compute_success_rate(successes),
            "goal_completion": compute_goal_completion([e["completion_ratio"] for e in episodes]),
            "spl": compute_spl(successes, [e["optimal_length"] for e in episodes], lengths),
            "goal_rates": compute_goal_rates(
                [e["goal_sequence"] for e in episodes],
                [e["achieved_goals"] for e in episodes],
            ),
            "termination_reasons": dict(Counter(e["termination_reason"] for e in episodes)),
            "mean_reward": float(np.mean(rewards)) if rewards else 0.0,
            "std_reward": float(np.std(rewards)) if rewards else 0.0,
            "mean_length": float(np.mean(lengths)) if lengths else 0.0,
            "std_length": float(np.std(lengths)) if lengths else 0.0,
            "num_episodes": num_episodes,
            "episodes": episodes,
        }

        if verbose:
            print(f"\n=== Evaluation Results ===")
            print(f"Success rate:    {metrics['success_rate']:.1%}")
            print(f"Goal completion: {metrics['goal_completion']:.1%}")
            print(f"SPL:             {metrics['spl']:.3f}")
            print(f"Mean reward:     {metrics['mean_reward']:.3f} ± {metrics['std_reward']:.3f}")
            print(f"Mean length:     {metrics['mean_length']:.1f} ± {metrics['std_length']:.1f}")
            for reason, count in sorted(metrics["termination_reasons"].items()):
                print(f"  {reason:<12} {count}")

        return metrics

    def compare_policies(
        self,
        policies: Dict[str, Callable],
        num_episodes: int = 100,
    ) -> Dict[str, Dict[str, Any]]:
        """Evaluate several named policies and print a comparison table."""
        results = {
            name: self.evaluate(policy_fn, num_episodes, verbose=False)
            for name, policy_fn in policies.items()
        }

        print("\n=== Comparison ===")
        print(f"{'Policy':<20} {'Success':<10} {'Completion':<12} {'SPL':<8} {'Reward':<10}")
        print("-" * 60)
        for name, m in results.items():
            print(f"{name:<20} {m['success_rate']:<10.1%} {m['goal_completion']:<12.1%} "
                  f"{m['spl']:<8.3f} {m['mean_reward']:.3f}")

        return results
