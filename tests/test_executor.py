import random
import time

import pytest

from sandforge.core.errors import RegistrationError, RuntimeActionError
from sandforge.core.executor import ActionWrapper, SafeAction, _once, _when
from sandforge.simulation.elements import BUILTIN_IDS

SAND = BUILTIN_IDS["SAND"]
FIRE = BUILTIN_IDS["FIRE"]
CUSTOM = 64


def place(grid, x, y, value=CUSTOM):
    i = grid.index(x, y)
    grid.cells[i] = value
    return i


def test_action_runs_fragment(grid, wrapper):
    action = wrapper.wrap("cells[i] = SAND", "SANDY")
    i = place(grid, 3, 3)
    action(3, 3, i)
    assert grid.cells[i] == SAND
    assert action.stats.calls == 1
    assert action.stats.errors == 0


def test_syntax_error_raises_registration_error(wrapper):
    with pytest.raises(RegistrationError) as excinfo:
        wrapper.wrap("if True\n    cells[i] = SAND", "BROKEN")
    assert excinfo.value.particle_name == "BROKEN"
    assert "__particle_action__" in excinfo.value.source


def test_generator_fragment_is_rejected(wrapper):
    with pytest.raises(RegistrationError):
        wrapper.wrap("yield cells[i]", "LAZY")


def test_inner_layer_falls_on_error(grid, wrapper):
    action = wrapper.wrap("cells[i + 100000] = FIRE", "OVERREACH")
    i = place(grid, 5, 0)
    action(5, 0, i)
    # the inner layer swallowed the IndexError and applied gravity
    assert grid.cells[grid.index(5, 1)] == CUSTOM
    assert grid.cells[i] == 0
    assert action.stats.errors == 0


def test_restricted_builtins(grid, wrapper):
    action = wrapper.wrap("import os\ncells[i] = SAND", "SNEAKY")
    i = place(grid, 2, 0)
    action(2, 0, i)
    assert SAND not in grid.census()

    action = wrapper.wrap("cells[i] = sum(1 for _ in range(1000))", "COUNTER")
    i = place(grid, 8, 15)
    action(8, 15, i)
    assert grid.cells[i] == 64

    action = wrapper.wrap("print('hello', x)\ncells[i] = SAND", "CHATTY")
    i = place(grid, 9, 15)
    action(9, 15, i)
    assert grid.cells[i] == SAND


def test_outer_layer_uses_name_fallback(grid):
    def broken(x, y, i):
        raise RuntimeError("boom")

    i = place(grid, 4, 4)
    action = SafeAction(broken, "MEGA_BOMB", grid.namespace())
    action(4, 4, i)

    assert grid.cells[i] == FIRE
    assert action.category == "explosive"
    assert action.stats.errors == 1
    assert isinstance(action.stats.last_error, RuntimeActionError)
    assert action.stats.last_error.position == (4, 4, i)


@pytest.mark.parametrize("name, category", [
    ("MUD_WATER", "liquid"),
    ("TOXIC_GAS", "gas"),
    ("PEBBLE", None),
])
def test_fallback_categories(grid, name, category):
    action = SafeAction(lambda x, y, i: 1 / 0, name, grid.namespace())
    assert action.category == category
    i = place(grid, 6, 6)
    action(6, 6, i)
    assert action.stats.errors == 1


def test_fallback_failure_is_contained():
    action = SafeAction(lambda x, y, i: 1 / 0, "PEBBLE", primitives={})
    action(0, 0, 0)
    assert action.stats.errors == 1
    assert action.stats.fallback_failures == 1


def test_slow_calls_are_counted():
    action = SafeAction(lambda x, y, i: time.sleep(0.01), "SLOWPOKE", primitives={},
                        slow_threshold_ms=1.0)
    action(0, 0, 0)
    assert action.stats.slow_calls == 1
    assert action.stats.max_ms >= 1.0


def test_adversarial_actions_never_raise(grid, categories):
    wrapper = ActionWrapper(grid.namespace(), categories, noise_probability=0.1)
    fragments = [
        "cells[i + int(random() * 5000) - 2500] = FIRE",
        "explode_now(x, y)",
        "cells[i] = 'SAND'",
        "cells[i] = 1 / (x - x)",
        "for _ in _when(True):\n    cells[i - width] = WATER",
        "raise ValueError('nope')",
    ]
    actions = [wrapper.wrap(fragment, f"CHAOS_{k}") for k, fragment in enumerate(fragments)]
    rng = random.Random(3)
    for _ in range(1000):
        x, y = rng.randrange(grid.width), rng.randrange(grid.height)
        i = grid.index(x, y)
        grid.cells[i] = CUSTOM
        rng.choice(actions)(x, y, i)


def test_loop_helpers():
    assert _once(range(10)) == [0]
    assert _once([]) == []
    assert _when(True) == (None,)
    assert _when(0) == ()


def test_stats_to_dict(grid, wrapper):
    action = wrapper.wrap("cells[i] = SAND", "SANDY")
    i = place(grid, 1, 1)
    action(1, 1, i)
    stats = action.stats.to_dict()
    assert stats["calls"] == 1
    assert set(stats) == {"calls", "errors", "fallback_failures", "slow_calls", "mean_ms", "max_ms"}
