# =============================================================================
# Evaluation Module
# =============================================================================
"""
Evaluation metrics and analysis for goal-sequencing agents.

Key Metrics Explained:
----------------------

1. SUCCESS RATE
   - % of episodes where the whole goal sequence was achieved

2. GOAL COMPLETION
   - Mean fraction of the sequence achieved, partial credit included
   - Separates "almost there" agents from ones that never start

3. SPL (Success weighted by Path Length)
   - SPL = (1/N) Σ S_i * (L_i / max(P_i, L_i))
   - L_i: Manhattan route through the sequence, P_i: steps taken
   - Perfect score = 1.0 (always succeeds optimally)
"""

from ltl_gridworld.evaluation.metrics import (
    compute_success_rate,
    compute_goal_completion,
    compute_spl,
    compute_goal_rates,
    EvaluationSuite,
)
from ltl_gridworld.evaluation.failure_analysis import FailureAnalyzer

__all__ = [
    "compute_success_rate",
    "compute_goal_completion",
    "compute_spl",
    "compute_goal_rates",
    "EvaluationSuite",
    "FailureAnalyzer",
]
