#!/usr/bin/env python3
"""
Run a random policy on the LTL grid world and report metrics.

Useful as a baseline and as a smoke test of the reward shaping.

Usage:
------
python scripts/run_random_agent.py --episodes 50
python scripts/run_random_agent.py --ltl-goal "F yellow" --log-dir data/trajectories
python scripts/run_random_agent.py --sequence 1,0,2 --moving-goals
"""

import argparse
import logging

import numpy as np


def parse_args():
    parser = argparse.ArgumentParser(description="Random-policy baseline for the LTL grid world")
    parser.add_argument("--config", type=str, default=None, help="YAML experiment config")
    parser.add_argument("--episodes", type=int, default=50, help="Episodes to run (default: 50)")
    parser.add_argument("--sequence", type=str, default=None,
                        help="Comma-separated goal codes, e.g. 1,0,2")
    parser.add_argument("--ltl-goal", type=str, default=None,
                        help="LTL goal label, e.g. 'F green'")
    parser.add_argument("--moving-goals", action="store_true", help="Goals flee the agent")
    parser.add_argument("--log-dir", type=str, default=None,
                        help="Record trajectories as JSONL in this directory")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    from ltl_gridworld.config import ExperimentConfig, load_config
    from ltl_gridworld.environment.goals import GoalType, parse_ltl_goal
    from ltl_gridworld.environment.trajectory_logger import TrajectoryLogger
    from ltl_gridworld.evaluation.failure_analysis import FailureAnalyzer
    from ltl_gridworld.evaluation.metrics import EvaluationSuite

    config = load_config(args.config) if args.config else ExperimentConfig()
    env_config = config.environment
    if args.moving_goals:
        env_config.moving_goals = True

    sequence = None
    if args.sequence:
        sequence = [GoalType.from_code(int(c)).name for c in args.sequence.split(",")]
    elif args.ltl_goal:
        goal = parse_ltl_goal(args.ltl_goal)
        if goal is None:
            raise SystemExit(f"LTL goal {args.ltl_goal!r} does not name a single goal")
        sequence = [goal.name]

    rng = np.random.default_rng(args.seed)

    def random_policy(obs):
        return int(rng.integers(0, 5))

    trajectory_logger = TrajectoryLogger(save_dir=args.log_dir) if args.log_dir else None

    suite = EvaluationSuite(env_config, goal_sequence=sequence, seed=args.seed)
    metrics = suite.evaluate(
        random_policy,
        num_episodes=args.episodes,
        trajectory_logger=trajectory_logger,
    )

    print()
    analyzer = FailureAnalyzer()
    for episode in metrics["episodes"]:
        analyzer.categorize(episode)
    analyzer.print_summary()

    if trajectory_logger is not None:
        print()
        print(f"Trajectories: {trajectory_logger.filepath}")
        for key, value in trajectory_logger.get_stats().items():
            print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
