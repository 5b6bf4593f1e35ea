"""Tests for the goal sequence queue."""

import logging

import pytest

from ltl_gridworld.environment.goal_queue import GoalSequenceQueue
from ltl_gridworld.environment.goals import GoalType

G, R, Y = GoalType.GreenPlus, GoalType.RedEx, GoalType.YellowStar


class TestGoalSequenceQueue:

    @pytest.mark.parametrize("sequence", [[R], [R, G, Y], [Y, Y, G], [G, R, Y, R]])
    def test_advance_transitions_match_length(self, sequence):
        queue = GoalSequenceQueue()
        assert queue.set_sequence(sequence)

        transitions = 0
        while queue.peek_current() is not None:
            head = queue.peek_current()
            new_head = queue.advance()
            transitions += 1
            assert head in queue.achieved
            if new_head is None:
                break

        assert transitions == len(sequence)
        assert queue.advance() is None
        assert queue.is_exhausted
        assert queue.achieved == set(sequence)

    def test_peek_does_not_remove(self):
        queue = GoalSequenceQueue([R, G])
        assert queue.peek_current() is R
        assert queue.peek_current() is R
        assert len(queue) == 2

    def test_set_sequence_resets_achieved(self):
        queue = GoalSequenceQueue([R, G])
        queue.advance()
        assert queue.achieved == {R}

        queue.set_sequence([Y])
        assert queue.achieved == set()
        assert queue.remaining == [Y]

    @pytest.mark.parametrize("empty", [[], None, ()])
    def test_empty_input_is_a_logged_noop(self, empty, caplog):
        queue = GoalSequenceQueue([R, G, Y])
        queue.advance()

        with caplog.at_level(logging.WARNING):
            assert not queue.set_sequence(empty)

        assert "empty goal sequence" in caplog.text
        assert queue.remaining == [G, Y]
        assert queue.achieved == {R}
        assert queue.template == (R, G, Y)

    def test_restart_refills_from_template(self):
        queue = GoalSequenceQueue([R, G])
        queue.advance()
        queue.advance()
        assert queue.is_exhausted

        queue.restart()
        assert queue.remaining == [R, G]
        assert queue.achieved == set()
        assert not queue.is_exhausted

    def test_completion_ratio(self):
        queue = GoalSequenceQueue()
        assert queue.completion_ratio == 0.0
        assert not queue.is_exhausted

        queue.set_sequence([R, G, Y])
        queue.advance()
        assert queue.completion_ratio == pytest.approx(1 / 3)
