#!/usr/bin/env python3
# =============================================================================
# Train PPO Agent
# =============================================================================
"""
Train a PPO agent on the LTL grid world.

Usage:
------
# Basic training
python scripts/train_ppo.py

# Custom sequence and settings
python scripts/train_ppo.py --sequence RedEx,GreenPlus,YellowStar --iterations 500

# From a YAML config
python scripts/train_ppo.py --config configs/default.yaml

# Resume from checkpoint
python scripts/train_ppo.py --checkpoint experiments/checkpoints/my_exp/checkpoint_00100
"""

import argparse
import logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Train PPO agent on the LTL grid world")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML experiment config (flags below override it)"
    )

    # Environment
    parser.add_argument(
        "--sequence",
        type=str,
        default=None,
        help="Comma-separated goal sequence, e.g. RedEx,YellowStar,GreenPlus"
    )
    parser.add_argument(
        "--grid-size",
        type=int,
        default=None,
        help="Grid size (default: from config, 5)"
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Max steps per episode (default: from config, 100)"
    )

    # Training
    parser.add_argument(
        "--iterations",
        type=int,
        default=100,
        help="Number of training iterations (default: 100)"
    )
    parser.add_argument(
        "--lr",
        type=float,
        default=None,
        help="Learning rate (default: from config, 3e-4)"
    )
    parser.add_argument(
        "--num-workers",
        type=int,
        default=None,
        help="Number of parallel workers (default: from config, 2)"
    )
    parser.add_argument(
        "--eval-freq",
        type=int,
        default=10,
        help="Evaluate every N iterations, 0 to disable (default: 10)"
    )
    parser.add_argument(
        "--target-success",
        type=float,
        default=None,
        help="Stop early once evaluation reaches this success rate"
    )

    # Experiment
    parser.add_argument(
        "--name",
        type=str,
        default="ppo_baseline",
        help="Experiment name (default: ppo_baseline)"
    )
    parser.add_argument(
        "--checkpoint",
        type=str,
        default=None,
        help="Path to checkpoint to resume from"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)"
    )

    return parser.parse_args()


def main():
    """Main training function."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    # Import here to avoid slow ray import if just checking help
    from ltl_gridworld.config import ExperimentConfig, load_config
    from ltl_gridworld.training.ppo_trainer import PPOTrainer

    config = load_config(args.config) if args.config else ExperimentConfig()
    config.name = args.name
    config.seed = args.seed
    if args.sequence:
        config.environment.default_sequence = args.sequence.split(",")
    if args.grid_size is not None:
        config.environment.grid_size = args.grid_size
    if args.max_steps is not None:
        config.environment.max_steps = args.max_steps
    if args.lr is not None:
        config.training.learning_rate = args.lr
    if args.num_workers is not None:
        config.training.num_workers = args.num_workers
    config.environment.validate()

    print("=" * 60)
    print("PPO Training")
    print("=" * 60)
    print(f"Goal sequence:  {config.environment.default_sequence}")
    print(f"Grid size:      {config.environment.grid_size}")
    print(f"Iterations:     {args.iterations}")
    print(f"Learning rate:  {config.training.learning_rate}")
    print(f"Workers:        {config.training.num_workers}")
    print(f"Experiment:     {config.name}")
    print("=" * 60)
    print()

    config_path = f"experiments/configs/{config.name}.yaml"
    config.save(config_path)
    print(f"Saved config to: {config_path}")

    trainer = PPOTrainer(config, checkpoint_path=args.checkpoint)

    try:
        trainer.train(
            iterations=args.iterations,
            checkpoint_freq=max(args.iterations // 10, 1),
            eval_freq=args.eval_freq,
            target_success_rate=args.target_success,
        )

        final_path = trainer.save("final")
        print(f"\nSaved final checkpoint to: {final_path}")

        print("\nRunning evaluation...")
        metrics = trainer.evaluate(num_episodes=100)

        print("\n" + "=" * 60)
        print("Training Complete!")
        print("=" * 60)
        print(f"Final success rate:    {metrics['success_rate']:.1%}")
        print(f"Final goal completion: {metrics['goal_completion']:.1%}")
        print(f"Final mean reward:     {metrics['mean_reward']:.3f}")

    finally:
        trainer.shutdown()


if __name__ == "__main__":
    main()
