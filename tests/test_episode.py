"""Tests for the episode state machine."""

from ltl_gridworld.environment.episode import (
    EpisodeState,
    EpisodeStateMachine,
    TerminationReason,
)


class TestEpisodeStateMachine:

    def test_starts_ended_until_begin(self):
        machine = EpisodeStateMachine(max_steps=10, max_steps_without_progress=5)
        assert machine.state is EpisodeState.ENDED

        machine.begin()
        assert machine.state is EpisodeState.RUNNING
        assert machine.step_count == 0

    def test_timeout_at_max_steps(self):
        machine = EpisodeStateMachine(max_steps=3, max_steps_without_progress=100)
        machine.begin()
        for _ in range(2):
            machine.record_step(progress=True)
            assert machine.check(sequence_complete=False) is None

        machine.record_step(progress=True)
        assert machine.check(sequence_complete=False) is TerminationReason.TIMEOUT

    def test_stagnation_counter_resets_on_progress(self):
        machine = EpisodeStateMachine(max_steps=100, max_steps_without_progress=3)
        machine.begin()
        machine.record_step(progress=False)
        machine.record_step(progress=False)
        machine.record_step(progress=True)
        assert machine.steps_without_progress == 0

        for _ in range(3):
            machine.record_step(progress=False)
        assert machine.check(sequence_complete=False) is TerminationReason.STAGNATION

    def test_success_takes_priority(self):
        machine = EpisodeStateMachine(max_steps=1, max_steps_without_progress=1)
        machine.begin()
        machine.record_step(progress=False)
        assert machine.check(sequence_complete=True) is TerminationReason.SUCCESS

    def test_terminate_fires_once(self):
        machine = EpisodeStateMachine(max_steps=10, max_steps_without_progress=10)
        machine.begin()

        assert machine.terminate(TerminationReason.SUCCESS)
        assert machine.state is EpisodeState.ENDED
        assert machine.reason is TerminationReason.SUCCESS

        assert not machine.terminate(TerminationReason.SUCCESS)
        assert not machine.terminate(TerminationReason.TIMEOUT)
        assert machine.reason is TerminationReason.SUCCESS
        assert machine.check(sequence_complete=True) is None

    def test_ended_episode_does_not_count_steps(self):
        machine = EpisodeStateMachine(max_steps=10, max_steps_without_progress=10)
        machine.begin()
        machine.record_step(progress=False)
        machine.terminate(TerminationReason.TIMEOUT)
        machine.record_step(progress=False)
        assert machine.step_count == 1

    def test_begin_resets_everything(self):
        machine = EpisodeStateMachine(max_steps=10, max_steps_without_progress=10)
        machine.begin()
        machine.record_step(progress=False)
        machine.terminate(TerminationReason.STAGNATION)

        machine.begin()
        assert machine.is_running
        assert machine.step_count == 0
        assert machine.steps_without_progress == 0
        assert machine.reason is None
