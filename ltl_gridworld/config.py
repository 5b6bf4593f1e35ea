# =============================================================================
# Experiment Configuration
# =============================================================================
"""
Configuration management for environments and experiments.

This module provides:
- Dataclass configs for the world, reward shaping and training
- YAML config loading and saving
- Basic validation of environment layouts

Why YAML Configs?
-----------------
1. REPRODUCIBILITY: Exact reward constants saved with each run
2. VERSIONING: Can track config changes in git
3. FLEXIBILITY: Tune shaping without touching code

Example config:
---------------
```yaml
name: "sequence_baseline"
seed: 42

environment:
  grid_size: 5
  max_steps: 100
  default_sequence: ["RedEx", "YellowStar", "GreenPlus"]
  reward:
    goal_reward: 1.0
    step_penalty: 0.005

training:
  ppo_iterations: 200
```
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import yaml


@dataclass
class RewardConfig:
    """
    Reward shaping constants.

    All penalties are stored as positive magnitudes and subtracted by the
    reward shaper.
    """
    step_penalty: float = 0.005
    movement_reward: float = 0.001
    wall_penalty: float = 0.01

    # Distance shaping
    distance_scale: float = 0.05
    closest_distance_bonus: float = 0.01

    # Exploration
    exploration_bonus: float = 0.005
    exploration_resolution: float = 0.5

    # Repeated actions
    repeat_action_threshold: int = 4
    repeat_action_penalty: float = 0.002

    # Goals
    goal_radius: float = 0.5
    goal_reward: float = 1.0
    powerup_goal: Optional[str] = "YellowStar"
    powerup_bonus: float = 0.25
    powerup_multiplier: float = 1.5

    # Terminal
    sequence_completion_bonus: float = 2.0
    partial_completion_bonus: float = 0.5
    incomplete_penalty: float = 1.0


@dataclass
class EnvironmentConfig:
    """Grid layout, episode limits and observation settings."""
    grid_size: int = 5
    max_steps: int = 100
    max_steps_without_progress: int = 40

    agent_start: Tuple[int, int] = (1, 1)
    goal_positions: Dict[str, Tuple[int, int]] = field(default_factory=lambda: {
        "RedEx": (2, 2),
        "YellowStar": (3, 3),
        "GreenPlus": (4, 4),
    })
    walls: List[Tuple[int, int]] = field(default_factory=list)
    randomize_goals: bool = False

    # Goals that step away from the agent when it comes close, and
    # otherwise wander to a random free neighbour
    moving_goals: bool = False
    detection_radius: float = 2.0
    wander_probability: float = 0.0

    default_sequence: List[str] = field(
        default_factory=lambda: ["RedEx", "YellowStar", "GreenPlus"]
    )
    include_zone_vector: bool = True

    reward: RewardConfig = field(default_factory=RewardConfig)

    def __post_init__(self):
        # YAML has no tuples, so coordinates come back as lists
        self.agent_start = tuple(self.agent_start)
        self.goal_positions = {k: tuple(v) for k, v in self.goal_positions.items()}
        self.walls = [tuple(w) for w in self.walls]
        self.default_sequence = list(self.default_sequence)
        if isinstance(self.reward, dict):
            self.reward = RewardConfig(**self.reward)

    def validate(self) -> None:
        """
        Check the layout for inconsistencies.

        Raises:
        -------
        ValueError
            If the grid is too small, a position falls outside the grid or
            on a wall, two fixed goals share a cell or sit on the agent's
            start, or a goal name is unknown.
        """
        from ltl_gridworld.environment.goals import GoalType

        if self.grid_size < 2:
            raise ValueError(f"grid_size must be at least 2, got {self.grid_size}")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")
        if self.max_steps_without_progress < 1:
            raise ValueError("max_steps_without_progress must be positive")

        def inside(pos):
            return 0 <= pos[0] < self.grid_size and 0 <= pos[1] < self.grid_size

        walls = set(self.walls)
        if not inside(self.agent_start) or self.agent_start in walls:
            raise ValueError(f"agent_start {self.agent_start} is not a free cell")

        occupied = {}
        for name, pos in self.goal_positions.items():
            GoalType.from_name(name)
            if not inside(pos) or pos in walls:
                raise ValueError(f"goal {name} at {pos} is not a free cell")
            # Sampled layouts never reuse a cell or the start
            if self.randomize_goals:
                continue
            if pos == self.agent_start:
                raise ValueError(f"goal {name} at {pos} is on agent_start")
            if pos in occupied:
                raise ValueError(f"goals {occupied[pos]} and {name} share cell {pos}")
            occupied[pos] = name

        if not 0.0 <= self.wander_probability <= 1.0:
            raise ValueError(
                f"wander_probability must be in [0, 1], got {self.wander_probability}"
            )

        for name in self.default_sequence:
            GoalType.from_name(name)

        if self.reward.powerup_goal is not None:
            GoalType.from_name(self.reward.powerup_goal)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EnvironmentConfig":
        """Create from dictionary (also accepts RLlib's EnvContext)."""
        return cls(**dict(d))


@dataclass
class TrainingConfig:
    """PPO hyperparameters."""
    ppo_iterations: int = 200
    train_batch_size: int = 2048
    learning_rate: float = 3e-4
    gamma: float = 0.99
    clip_param: float = 0.2
    num_sgd_iter: int = 10
    entropy_coeff: float = 0.01

    # Workers
    num_workers: int = 2
    num_envs_per_worker: int = 4


@dataclass
class ExperimentConfig:
    """
    Complete experiment configuration.

    Combines all sub-configs into one object.
    Can be loaded from YAML or created programmatically.
    """
    # Experiment metadata
    name: str = "experiment"
    seed: int = 42

    # Sub-configs
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    # Paths
    checkpoint_dir: str = "experiments/checkpoints"
    log_dir: str = "experiments/logs"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        # Keep the YAML free of python/tuple tags
        env = d["environment"]
        env["agent_start"] = list(env["agent_start"])
        env["goal_positions"] = {k: list(v) for k, v in env["goal_positions"].items()}
        env["walls"] = [list(w) for w in env["walls"]]
        return d

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExperimentConfig":
        """Create from dictionary."""
        d = dict(d)
        if "environment" in d and isinstance(d["environment"], dict):
            d["environment"] = EnvironmentConfig.from_dict(d["environment"])
        if "training" in d and isinstance(d["training"], dict):
            d["training"] = TrainingConfig(**d["training"])

        return cls(**d)


def load_config(path: str) -> ExperimentConfig:
    """
    Load configuration from YAML file.

    Parameters:
    -----------
    path : str
        Path to YAML config file

    Returns:
    --------
    ExperimentConfig
        Loaded configuration
    """
    with open(path, 'r') as f:
        d = yaml.safe_load(f) or {}

    config = ExperimentConfig.from_dict(d)
    config.environment.validate()
    return config


def create_default_config(name: str = "default") -> ExperimentConfig:
    """Create a default configuration."""
    return ExperimentConfig(name=name)
