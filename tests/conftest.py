import pytest

from ltl_gridworld.environment.ltl_grid_env import LTLGridEnv, make_env


@pytest.fixture
def env():
    env = LTLGridEnv()
    env.reset(seed=0)
    yield env
    env.close()


@pytest.fixture
def env_factory():
    """Build and reset an environment with config overrides."""
    created = []

    def _make(options=None, **overrides):
        env = make_env(**overrides)
        env.reset(seed=0, options=options)
        created.append(env)
        return env

    yield _make
    for env in created:
        env.close()
