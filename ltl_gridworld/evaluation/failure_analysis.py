# =============================================================================
# Failure Analysis
# =============================================================================
"""
Analyze and categorize failed goal-sequencing episodes.

Understanding WHY an agent fails is crucial for tuning the shaping terms.

Failure Modes:
--------------

1. WRONG ORDERING
   - Agent touched a goal that is still pending but not the current target
   - Example: sequence [RedEx, GreenPlus], agent walks onto GreenPlus first
   - Cause: not conditioning on the current-goal part of the observation

2. STUCK/LOOPING
   - Agent oscillates between cells or repeats a short action pattern
   - Cause: distance shaping pulling in opposite directions, or walls

3. TIMEOUT
   - Agent ran out of steps while still making some progress

4. STAGNATION
   - Too many consecutive steps without getting closer to the target

Categories are checked in that order; the first match wins.
"""

from collections import Counter
from typing import Any, Dict, List, Sequence

import numpy as np

from ltl_gridworld.environment.grid_world import Action

_OPPOSITE = {
    Action.UP: Action.DOWN,
    Action.DOWN: Action.UP,
    Action.LEFT: Action.RIGHT,
    Action.RIGHT: Action.LEFT,
}


def has_repeating_pattern(actions: Sequence[int], repeats: int = 3) -> bool:
    """True if a 2-4 action pattern with at least two distinct actions repeats back to back."""
    for size in range(2, 5):
        span = size * repeats
        for start in range(len(actions) - span + 1):
            pattern = list(actions[start:start + size])
            if len(set(pattern)) < 2:
                continue
            if all(
                list(actions[start + k * size:start + (k + 1) * size]) == pattern
                for k in range(1, repeats)
            ):
                return True
    return False


def count_reversals(actions: Sequence[int]) -> int:
    """Number of moves that undo the move right before them."""
    return sum(
        1 for prev, cur in zip(actions, actions[1:])
        if prev in _OPPOSITE and _OPPOSITE[Action(prev)] == cur
    )


class FailureAnalyzer:
    """
    Buckets failed episodes and tracks which goals were left undone.

    Example:
    --------
    >>> analyzer = FailureAnalyzer()
    >>> for episode in metrics["episodes"]:
    ...     analyzer.categorize(episode)
    >>> analyzer.print_summary()
    """

    CATEGORIES = [
        "wrong_ordering",
        "stuck_looping",
        "timeout",
        "stagnation",
        "other",
    ]

    # Loop detection looks at this many trailing actions
    LOOP_WINDOW = 18
    MIN_LOOP_ACTIONS = 12
    MIN_REVERSALS = 6

    def __init__(self):
        self.failures: List[Dict[str, Any]] = []
        self.category_counts = Counter()
        self.missed_goals = Counter()
        self.first_missed = Counter()

    def categorize(self, episode: Dict[str, Any]) -> str:
        """
        Categorize a failed episode.

        Parameters:
        -----------
        episode : dict
            Episode data as produced by EvaluationSuite. Uses actions,
            success, termination_reason and off_target_goals; goal_sequence
            and achieved_goals feed the missed-goal counts when present.

        Returns:
        --------
        str
            Failure category, or "not_failure" for successful episodes
        """
        if episode.get("success", False):
            return "not_failure"

        actions = list(episode.get("actions", []))
        category = self._classify(
            actions,
            episode.get("termination_reason"),
            episode.get("off_target_goals", []),
        )

        achieved = set(episode.get("achieved_goals", []))
        missed = [g for g in episode.get("goal_sequence", []) if g not in achieved]
        self.missed_goals.update(set(missed))
        if missed:
            self.first_missed[missed[0]] += 1

        self.failures.append({
            "category": category,
            "goal_sequence": episode.get("goal_sequence", []),
            "missed_goals": missed,
            "length": len(actions),
            "actions": actions,
        })
        self.category_counts[category] += 1
        return category

    def _classify(self, actions: List[int], reason: Any, off_target: List[str]) -> str:
        if off_target:
            return "wrong_ordering"
        if self._detect_loop(actions):
            return "stuck_looping"
        if reason in ("timeout", "stagnation"):
            return reason
        return "other"

    def _detect_loop(self, actions: List[int]) -> bool:
        if len(actions) < self.MIN_LOOP_ACTIONS:
            return False
        if has_repeating_pattern(actions[-self.LOOP_WINDOW:]):
            return True
        return count_reversals(actions[-10:]) >= self.MIN_REVERSALS

    def summary(self) -> Dict[str, Any]:
        """
        Get summary of all analyzed failures.

        Returns:
        --------
        dict
            total_failures; per category count, percentage and average
            length; how often each goal was missed, and how often it was
            the first goal missed
        """
        total = len(self.failures)
        if total == 0:
            return {"total_failures": 0, "categories": {}, "missed_goals": {}, "first_missed": {}}

        lengths: Dict[str, List[int]] = {}
        for failure in self.failures:
            lengths.setdefault(failure["category"], []).append(failure["length"])

        return {
            "total_failures": total,
            "categories": {
                cat: {
                    "count": self.category_counts[cat],
                    "percentage": self.category_counts[cat] / total * 100,
                    "avg_length": float(np.mean(lengths[cat])),
                }
                for cat in self.CATEGORIES
                if cat in lengths
            },
            "missed_goals": dict(self.missed_goals),
            "first_missed": dict(self.first_missed),
        }

    def print_summary(self) -> None:
        summary = self.summary()

        print("=== Failure Analysis ===")
        print(f"Total failures: {summary['total_failures']}")
        if not summary["categories"]:
            return

        print()
        print(f"{'Category':<18} {'Count':<8} {'%':<8} {'Avg Len':<10}")
        print("-" * 44)
        for cat, stats in sorted(summary["categories"].items(), key=lambda x: -x[1]["count"]):
            print(f"{cat:<18} {stats['count']:<8} "
                  f"{stats['percentage']:<8.1f}{stats['avg_length']:.1f}")

        print()
        print("First goal missed:")
        for goal, count in self.first_missed.most_common():
            print(f"  {goal:<12} {count}")

    def get_examples(self, category: str, n: int = 5) -> List[Dict[str, Any]]:
        """Up to n failures from a category."""
        return [f for f in self.failures if f["category"] == category][:n]
