import textwrap

import pytest

from sandforge.controllers.sanitizer import FragmentSanitizer, normalize

ADVERSARIAL = [
    "while True:\n    do_rise(x, y, i, 1.0, 0.5)",
    "while cells[i] != BACKGROUND: cells[i] = SAND",
    "for k in range(100000):\n    cells[i] = SAND",
    "for k in range(3): cells[i] = SAND",
    "for a, b in zip(xs, ys):  # pairs\n    pass",
    "def helper(a):\n    return a\ncells[i] = SAND",
    "class Thing:\n    pass",
    "f = lambda q: q * 2",
    "eval('1 + 1')\nexec('x = 1')\n__import__('os')",
    "import os\nfrom subprocess import run\nos.system('ls')",
    "time.sleep(5)\nthreading.Timer(1, f).start()",
    "globals()['cells'] = None\nvars()",
    "cells.__class__.__init__",
    "sys.exit(0)\nbuiltins.open('x')",
    "for c in cells[0:10]: cells[i] = SAND",
    "for k in range(len(cells[i:])): cells[i] = {0: SAND}[0]",
    "cells._data.clear()",
]


@pytest.fixture
def sanitizer():
    return FragmentSanitizer()


@pytest.mark.parametrize("fragment", ADVERSARIAL)
def test_sanitize_is_idempotent(sanitizer, fragment):
    once = sanitizer.sanitize(fragment)
    assert sanitizer.sanitize(once) == once


@pytest.mark.parametrize("fragment", ADVERSARIAL)
def test_sanitized_fragments_still_parse(sanitizer, fragment):
    # fragments run as a function body, so parse them as one
    body = textwrap.indent(sanitizer.sanitize(fragment), "    ")
    compile("def action(x, y, i):\n" + body + "\n    pass\n", "<fragment>", "exec")


def test_while_becomes_single_pass(sanitizer):
    result = sanitizer.sanitize("while True:\n    do_rise(x, y, i, 1.0, 0.5)")
    assert result == "for _ in _when(True):\n    do_rise(x, y, i, 1.0, 0.5)"


def test_inline_while_becomes_if(sanitizer):
    result = sanitizer.sanitize("while cells[i] != BACKGROUND: cells[i] = SAND")
    assert result == "if cells[i] != BACKGROUND: cells[i] = SAND"


def test_for_iterable_is_bounded(sanitizer):
    assert sanitizer.sanitize("for k in range(100000):\n    cells[i] = SAND") == \
        "for k in _once(range(100000)):\n    cells[i] = SAND"
    assert sanitizer.sanitize("for k in range(3): cells[i] = SAND") == \
        "for k in _once(range(3)): cells[i] = SAND"


def test_definitions_are_dead_branches(sanitizer):
    result = sanitizer.sanitize("def helper(a):\n    return a\ncells[i] = SAND")
    assert result == "if False:\n    return a\ncells[i] = SAND"
    assert sanitizer.sanitize("class Thing:\n    pass") == "if False:\n    pass"
    assert "lambda" not in sanitizer.sanitize("f = lambda q: q * 2")


def test_dynamic_evaluation_is_inert(sanitizer):
    result = sanitizer.sanitize("eval('1 + 1')\nexec('x = 1')\n__import__('os')")
    assert result == "log('1 + 1')\nlog('x = 1')\nlog('os')"


def test_imports_and_host_access(sanitizer):
    result = sanitizer.sanitize("import os\nfrom subprocess import run\nos.system('ls')")
    assert result == "pass\npass\nvoid_system('ls')"
    assert "sys." not in sanitizer.sanitize("sys.exit(0)")
    assert sanitizer.sanitize("cells.__class__") == "cells.void_"
    assert "globals" not in sanitizer.sanitize("globals()['cells'] = None")


def test_timers_are_inert(sanitizer):
    result = sanitizer.sanitize("time.sleep(5)\nthreading.Timer(1, f).start()")
    assert "sleep" not in result
    assert "Timer" not in result


def test_benign_fragment_untouched(sanitizer):
    fragment = (
        "if adjacent(x, i, FIRE):\n"
        "    cells[i] = FIRE\n"
        "else:\n"
        "    do_gravity(x, y, i, True, 0.9)"
    )
    assert sanitizer.sanitize(fragment) == fragment


def test_normalize_strips_fences_and_outer_def():
    fenced = "```python\n    if random() < 0.5:\n        cells[i] = SAND\n```"
    assert normalize(fenced) == "if random() < 0.5:\n    cells[i] = SAND"

    wrapped = "def update(x, y, i):\n    do_gravity(x, y, i, True, 0.5)"
    assert normalize(wrapped) == "do_gravity(x, y, i, True, 0.5)"

    assert normalize("def update(x, y, i): do_rise(x, y, i, 0.9, 0.7)") == "do_rise(x, y, i, 0.9, 0.7)"


def test_empty_input(sanitizer):
    assert sanitizer.sanitize("") == ""
    assert sanitizer.sanitize(None) == ""


def test_inline_for_keeps_bracketed_colons(sanitizer):
    assert sanitizer.sanitize("for c in cells[0:10]: cells[i] = SAND") == \
        "for c in _once(cells[0:10]): cells[i] = SAND"
    assert sanitizer.sanitize("for k in range(len(cells[i:])): cells[i] = SAND") == \
        "for k in _once(range(len(cells[i:]))): cells[i] = SAND"


def test_private_attributes_are_unreachable(sanitizer):
    assert sanitizer.sanitize("cells._data.clear()") == "cells.void_.clear()"
    assert sanitizer.sanitize("cells . _check(0)") == "cells .void_(0)"
