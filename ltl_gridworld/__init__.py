# =============================================================================
# LTL Grid World
# =============================================================================
"""
Goal-sequencing grid world driven by external LTL goal specifications.

An agent walks a small grid and has to reach coloured goal objects in the
order requested by an external trainer. The trainer talks to the
environment over a side channel, sending either an LTL goal label
("F green") or an explicit list of goal codes.

Subpackages:
- environment: goal catalog, sequence queue, episode state machine,
  reward shaper, goal channel and the gymnasium environment itself
- evaluation: metrics and failure analysis
- training: RLlib PPO training
"""

__version__ = "0.1.0"
