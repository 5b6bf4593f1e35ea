# =============================================================================
# Trajectory Logger
# =============================================================================
"""
Records goal-sequencing episodes to JSONL files.

Each line is one complete episode: the goal sequence it was asked to
follow, which goals were achieved, why it ended, and every step taken.

Why Log Trajectories?
---------------------
1. DEBUGGING: Replay episodes that stalled or hit goals out of order
2. ANALYSIS: Feed FailureAnalyzer with real episodes
3. REWARD TUNING: Per-step reward terms show which shaping term dominates

Step records keep the fields needed for those three uses (position,
target, reward breakdown, off-target touches) instead of the whole info
dict, which keeps a 100-step episode to a few kilobytes.
"""

import json
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import numpy as np


@dataclass
class StepRecord:
    """
    One environment step.

    Attributes:
    -----------
    observation : list
        The observation vector after the step
    action : int
        The action taken (0-4)
    action_name : str
        Human-readable action name
    reward : float
        Total reward of the step
    position : list
        Agent cell after the step
    current_goal : str, optional
        Target after the step (None once the sequence is done)
    reward_terms : dict
        Per-term reward breakdown
    off_target_goals : list
        Pending goals touched while something else was the target
    wall_hit : bool
        Whether the move was blocked
    """
    observation: List[float]
    action: int
    action_name: str
    reward: float
    position: List[int]
    current_goal: Optional[str] = None
    reward_terms: Dict[str, float] = field(default_factory=dict)
    off_target_goals: List[str] = field(default_factory=list)
    wall_hit: bool = False


@dataclass
class EpisodeRecord:
    """A complete recorded episode."""
    episode_id: int
    goal_sequence: List[str]
    achieved_goals: List[str]
    termination_reason: Optional[str]
    completion_ratio: float
    success: bool
    steps: List[StepRecord]
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def num_steps(self) -> int:
        return len(self.steps)

    @property
    def total_reward(self) -> float:
        return sum(s.reward for s in self.steps)

    @property
    def actions(self) -> List[int]:
        return [s.action for s in self.steps]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["num_steps"] = self.num_steps
        d["total_reward"] = self.total_reward
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EpisodeRecord":
        d = {k: v for k, v in d.items() if k not in ("num_steps", "total_reward")}
        d["steps"] = [StepRecord(**s) for s in d.get("steps", [])]
        return cls(**d)


def to_json_value(obj: Any) -> Any:
    """Recursively convert numpy, enum and set values to plain JSON types."""
    if isinstance(obj, dict):
        return {str(k): to_json_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_json_value(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, Enum):
        return obj.name
    return obj


class TrajectoryLogger:
    """
    Appends episodes to a JSONL file and reads them back.

    Example:
    --------
    >>> logger = TrajectoryLogger("data/trajectories")
    >>> obs, info = env.reset()
    >>> logger.start_episode(goal_sequence=info["goal_sequence"])
    >>> obs, reward, terminated, truncated, info = env.step(action)
    >>> logger.log_step(obs, action, reward, info)
    >>> episode = logger.end_episode(info)
    """

    def __init__(
        self,
        save_dir: str = "data/trajectories",
        filename: str = "trajectories.jsonl",
    ):
        """
        Parameters:
        -----------
        save_dir : str
            Directory to save trajectory files
        filename : str
            Name of the JSONL file
        """
        self.save_dir = Path(save_dir)
        self.filepath = self.save_dir / filename
        self.save_dir.mkdir(parents=True, exist_ok=True)

        self._header: Optional[Dict[str, Any]] = None
        self._steps: List[StepRecord] = []
        self._next_id = sum(1 for _ in self._read_lines())

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------
    def start_episode(
        self,
        goal_sequence: List[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Start recording a new episode and return its id."""
        self._header = {
            "episode_id": self._next_id,
            "goal_sequence": list(goal_sequence),
            "metadata": to_json_value(metadata or {}),
        }
        self._steps = []
        return self._next_id

    def log_step(
        self,
        observation: Any,
        action: int,
        reward: float,
        info: Dict[str, Any],
    ) -> None:
        """
        Record one step.

        Parameters:
        -----------
        observation : array
            Observation returned by env.step()
        action : int
            Action passed to env.step()
        reward : float
            Reward returned by env.step()
        info : dict
            Info dict returned by env.step()
        """
        if self._header is None:
            raise RuntimeError("No episode started! Call start_episode first.")

        step = StepRecord(
            observation=to_json_value(np.asarray(observation, dtype=np.float32)),
            action=int(action),
            action_name=info.get("action_name", f"action_{int(action)}"),
            reward=float(reward),
            position=to_json_value(np.asarray(observation)[:2].astype(int)),
            current_goal=info.get("current_goal"),
            reward_terms=to_json_value(info.get("reward_terms", {})),
            off_target_goals=list(info.get("off_target_goals", [])),
            wall_hit=bool(info.get("wall_hit", False)),
        )
        self._steps.append(step)

    def end_episode(self, final_info: Dict[str, Any]) -> EpisodeRecord:
        """
        Close the current episode and append it to the file.

        Parameters:
        -----------
        final_info : dict
            The info dict returned by the last env.step()
        """
        if self._header is None:
            raise RuntimeError("No episode to end! Call start_episode first.")

        episode = EpisodeRecord(
            achieved_goals=list(final_info.get("achieved_goals", [])),
            termination_reason=final_info.get("termination_reason"),
            completion_ratio=float(final_info.get("completion_ratio", 0.0)),
            success=bool(final_info.get("success", False)),
            steps=self._steps,
            **self._header,
        )

        with open(self.filepath, "a") as f:
            json.dump(episode.to_dict(), f)
            f.write("\n")

        self._next_id += 1
        self._header = None
        self._steps = []
        return episode

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------
    def _read_lines(self) -> Iterator[str]:
        if not self.filepath.exists():
            return
        with open(self.filepath, "r") as f:
            for line in f:
                if line.strip():
                    yield line

    def iter_episodes(self) -> Iterator[EpisodeRecord]:
        """Stream episodes from the file one line at a time."""
        for line in self._read_lines():
            yield EpisodeRecord.from_dict(json.loads(line))

    def load_all(self) -> List[EpisodeRecord]:
        return list(self.iter_episodes())

    def load_successful(self) -> List[EpisodeRecord]:
        return [ep for ep in self.iter_episodes() if ep.success]

    def load_by_reason(self, reason: str) -> List[EpisodeRecord]:
        """Episodes that ended for the given reason ("timeout", "stagnation", ...)."""
        return [ep for ep in self.iter_episodes() if ep.termination_reason == reason]

    def get_stats(self) -> Dict[str, Any]:
        """
        Summarise the saved episodes.

        Returns:
        --------
        dict
            Counts, success rate, mean goal completion, mean steps and
            reward, and how often each termination reason occurred
        """
        episodes = self.load_all()
        if not episodes:
            return {"total_episodes": 0}

        n = len(episodes)
        reasons = Counter(ep.termination_reason or "unfinished" for ep in episodes)
        return {
            "total_episodes": n,
            "successful_episodes": sum(ep.success for ep in episodes),
            "success_rate": sum(ep.success for ep in episodes) / n,
            "goal_completion": sum(ep.completion_ratio for ep in episodes) / n,
            "avg_steps": sum(ep.num_steps for ep in episodes) / n,
            "avg_reward": sum(ep.total_reward for ep in episodes) / n,
            "termination_reasons": dict(reasons),
        }
