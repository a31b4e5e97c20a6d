"""
Behavior templates substituted for trivial or incomplete fragments.

Templates are format strings over ``name`` (display only) and ``color_id``.
They use the same primitive surface as generated fragments.
"""

import re

# The "no real behavior" signal: a bare unconditional gravity call.
DEGENERATE_FRAGMENT = "do_gravity(x, y, i, True, 0.9)"
DEGENERATE_FRAGMENTS = (
    "do_gravity(x, y, i, True, 0.9)",
    "do_gravity(x, y, i, True, 1.0)",
)

_WHITESPACE = re.compile(r"\s+")


def normalize_fragment(code: str) -> str:
    """Lower-case, drop whitespace and trailing semicolons for equality checks."""
    return _WHITESPACE.sub("", code).lower().rstrip(";")


def is_degenerate(code: str, variants=DEGENERATE_FRAGMENTS) -> bool:
    normalized = normalize_fragment(code)
    return any(normalized == normalize_fragment(v) for v in variants)


HAIR_TEMPLATE = """\
# {name}: strands that hang, drift and burn
if adjacent(x, i, FIRE):
    if random() < 0.8:
        cells[i] = FIRE
elif adjacent(x, i, WATER):
    do_gravity(x, y, i, False, 0.95)
elif below(y, i, BACKGROUND) and random() < 0.2:
    if random() < 0.5 and x < width - 1 and cells[i + 1] == BACKGROUND:
        cells[i] = BACKGROUND
        cells[i + 1] = {color_id}
    elif x > 0 and cells[i - 1] == BACKGROUND:
        cells[i] = BACKGROUND
        cells[i - 1] = {color_id}
else:
    do_gravity(x, y, i, True, 0.7)
"""

GAS_TEMPLATE = """\
# {name}: rises and dissipates
if random() < 0.03:
    cells[i] = BACKGROUND
elif adjacent(x, i, FIRE) and random() < 0.5:
    do_rise(x, y, i, 1.0, 0.9)
else:
    do_rise(x, y, i, 0.9, 0.7)
"""

LIQUID_TEMPLATE = """\
# {name}: liquid that flows and spreads
if adjacent(x, i, FIRE) and random() < 0.1:
    cells[i] = {fire_product}
else:
    do_density_liquid(x, y, i, {heavier}, 0.9, 0.7)
"""

GENERIC_TEMPLATE = """\
# {name}: granular solid that smoulders near fire
if adjacent(x, i, FIRE) and random() < 0.05:
    cells[i] = FIRE
elif below(y, i, WATER) and random() < 0.5:
    do_gravity(x, y, i, False, 0.5)
else:
    do_gravity(x, y, i, True, 0.9)
"""

EXPLOSION_TEMPLATE = """\
if adjacent(x, i, FIRE) or below(y, i, FIRE) or above(y, i, FIRE):
    cells[i] = FIRE
    if i + 1 < len(cells):
        cells[i + 1] = FIRE
    if i - 1 >= 0:
        cells[i - 1] = FIRE
    if i + width < len(cells):
        cells[i + width] = FIRE
    if i - width >= 0:
        cells[i - width] = FIRE
else:
{body}
"""

# Offline sample: explodes on fire contact, otherwise falls like sand.
SAMPLE_TNT_CODE = """\
if adjacent(x, i, FIRE) or below(y, i, FIRE) or above(y, i, FIRE):
    cells[i] = FIRE
    if i + 1 < len(cells): cells[i + 1] = FIRE
    if i - 1 >= 0: cells[i - 1] = FIRE
    if i + width < len(cells): cells[i + width] = FIRE
    if i - width >= 0: cells[i - width] = FIRE
    if i + width + 1 < len(cells): cells[i + width + 1] = FIRE
    if i - width - 1 >= 0: cells[i - width - 1] = FIRE
else:
    do_gravity(x, y, i, True, 0.9)
"""
