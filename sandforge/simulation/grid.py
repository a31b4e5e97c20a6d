"""
Reference falling-sand grid.

A deliberately small engine: a linear cell buffer, a handful of built-in
behaviors, the movement/contact primitives that particle fragments call, and
the two parallel element/action tables that custom particles are appended to.
"""

import random as _random
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from loguru import logger

from .elements import BACKGROUND, BUILTIN_IDS, BUILTIN_NAMES

Action = Callable[[int, int, int], Any]


class CellBuffer:
    """Cell storage that rejects out-of-range indices and non-integer values."""

    def __init__(self, size: int, fill: int = BACKGROUND):
        self._data: List[int] = [fill] * size

    def _check(self, index: Any) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeError(f"cell index must be int, got {type(index).__name__}")
        if index < 0 or index >= len(self._data):
            raise IndexError(f"cell index {index} out of range")
        return index

    def __getitem__(self, index: int) -> int:
        return self._data[self._check(index)]

    def __setitem__(self, index: int, value: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"cell value must be int, got {type(value).__name__}")
        self._data[self._check(index)] = value

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def count(self, value: int) -> int:
        return self._data.count(value)

    def snapshot(self) -> List[int]:
        return list(self._data)


class SandGrid:
    """
    Falling-sand grid with an append-only element table.

    ``elements`` and ``actions`` are parallel lists: the action at position
    ``k`` runs for every cell holding ``elements[k]``.
    """

    def __init__(self, width: int = 64, height: int = 64, seed: Optional[int] = None):
        """
        Initialize the grid.

        Args:
            width: Row width in cells
            height: Number of rows
            seed: Optional seed for the grid's random source
        """
        if width < 1 or height < 1:
            raise ValueError("Grid dimensions must be positive")

        self.width = width
        self.height = height
        self.cells = CellBuffer(width * height)
        self.rng = _random.Random(seed)
        self.tick_count = 0

        self.elements: List[int] = []
        self.actions: List[Action] = []
        self._positions: Dict[int, int] = {}
        self._moved: Set[int] = set()

        builtin_actions = {
            "SAND": self._sand,
            "WATER": self._water,
            "OIL": self._oil,
            "STEAM": self._steam,
            "FIRE": self._fire,
        }
        for name in BUILTIN_NAMES:
            self.register_element(BUILTIN_IDS[name], builtin_actions.get(name, _static))

    # element tables

    def register_element(self, element_id: int, action: Action) -> None:
        """Append an element id and its action to the tables."""
        if element_id in self._positions:
            raise ValueError(f"Element id {element_id} is already registered")
        self._positions[element_id] = len(self.elements)
        self.elements.append(element_id)
        self.actions.append(action)

    def replace_action(self, element_id: int, action: Action) -> None:
        """Swap the action bound to an existing element id."""
        position = self._positions.get(element_id)
        if position is None:
            raise KeyError(f"Element id {element_id} is not registered")
        self.actions[position] = action
        logger.debug(f"Replaced action for element {element_id}")

    def action_for(self, element_id: int) -> Optional[Action]:
        position = self._positions.get(element_id)
        return None if position is None else self.actions[position]

    def has_element(self, element_id: int) -> bool:
        return element_id in self._positions

    # simulation

    def index(self, x: int, y: int) -> int:
        return y * self.width + x

    def fill(self, x0: int, y0: int, x1: int, y1: int, element_id: int) -> None:
        """Paint a rectangle (inclusive) with an element."""
        for y in range(max(0, y0), min(self.height - 1, y1) + 1):
            for x in range(max(0, x0), min(self.width - 1, x1) + 1):
                self.cells[self.index(x, y)] = element_id

    def tick(self) -> None:
        """Run one action per live cell, bottom row first."""
        self._moved.clear()
        for i in range(len(self.cells) - 1, -1, -1):
            if i in self._moved:
                continue
            element_id = self.cells[i]
            if element_id == BACKGROUND:
                continue
            action = self.action_for(element_id)
            if action is None:
                continue
            action(i % self.width, i // self.width, i)
        self.tick_count += 1

    def run(self, ticks: int) -> None:
        for _ in range(ticks):
            self.tick()

    def census(self) -> Dict[int, int]:
        """Count cells per element id, background excluded."""
        counts: Dict[int, int] = {}
        for value in self.cells:
            if value != BACKGROUND:
                counts[value] = counts.get(value, 0) + 1
        return counts

    # primitives exposed to particle fragments

    def random(self) -> float:
        return self.rng.random()

    def _swap(self, i: int, j: int) -> None:
        self.cells[i], self.cells[j] = self.cells[j], self.cells[i]
        self._moved.add(j)

    def _is(self, i: int, kind: int) -> bool:
        return 0 <= i < len(self.cells) and self.cells[i] == kind

    def below(self, y: int, i: int, kind: int) -> bool:
        return y < self.height - 1 and self._is(i + self.width, kind)

    def above(self, y: int, i: int, kind: int) -> bool:
        return y > 0 and self._is(i - self.width, kind)

    def adjacent(self, x: int, i: int, kind: int) -> bool:
        return (x > 0 and self._is(i - 1, kind)) or (x < self.width - 1 and self._is(i + 1, kind))

    def bordering(self, x: int, y: int, i: int, kind: int) -> bool:
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nx, ny = x + dx, y + dy
                if 0 <= nx < self.width and 0 <= ny < self.height and self.cells[i + dy * self.width + dx] == kind:
                    return True
        return False

    def do_gravity(self, x: int, y: int, i: int, allow_diagonal: bool, chance: float) -> bool:
        """Fall one cell (straight, or diagonally when allowed) with the given chance."""
        if y >= self.height - 1 or self.rng.random() >= chance:
            return False
        down = i + self.width
        if self.cells[down] == BACKGROUND:
            self._swap(i, down)
            return True
        if allow_diagonal:
            sides = [-1, 1]
            self.rng.shuffle(sides)
            for dx in sides:
                if 0 <= x + dx < self.width and self.cells[down + dx] == BACKGROUND:
                    self._swap(i, down + dx)
                    return True
        return False

    def do_density_liquid(self, x: int, y: int, i: int, heavier: int,
                          sink_chance: float, equalize_chance: float) -> bool:
        """Flow like a liquid; cells of ``heavier`` directly above sink through it."""
        if y > 0 and self.cells[i - self.width] == heavier and heavier != BACKGROUND \
                and self.rng.random() < sink_chance:
            self._swap(i, i - self.width)
            return True
        if self.do_gravity(x, y, i, True, 1.0):
            return True
        if self.rng.random() < equalize_chance:
            dx = -1 if self.rng.random() < 0.5 else 1
            if 0 <= x + dx < self.width and self.cells[i + dx] == BACKGROUND:
                self._swap(i, i + dx)
                return True
        return False

    def do_rise(self, x: int, y: int, i: int, rise_chance: float, adjacent_chance: float) -> bool:
        """Move up into empty space, or drift sideways."""
        if y > 0 and self.rng.random() < rise_chance and self.cells[i - self.width] == BACKGROUND:
            self._swap(i, i - self.width)
            return True
        if self.rng.random() < adjacent_chance:
            dx = -1 if self.rng.random() < 0.5 else 1
            if 0 <= x + dx < self.width and self.cells[i + dx] == BACKGROUND:
                self._swap(i, i + dx)
                return True
        return False

    def namespace(self) -> Dict[str, Any]:
        """Names a particle fragment may reference."""
        ns: Dict[str, Any] = dict(BUILTIN_IDS)
        ns.update({
            "cells": self.cells,
            "width": self.width,
            "height": self.height,
            "random": self.random,
            "below": self.below,
            "above": self.above,
            "adjacent": self.adjacent,
            "bordering": self.bordering,
            "do_gravity": self.do_gravity,
            "do_density_liquid": self.do_density_liquid,
            "do_rise": self.do_rise,
        })
        return ns

    # built-in behaviors

    def _sand(self, x: int, y: int, i: int) -> None:
        self.do_gravity(x, y, i, True, 1.0)

    def _water(self, x: int, y: int, i: int) -> None:
        self.do_density_liquid(x, y, i, BUILTIN_IDS["SAND"], 0.9, 0.7)

    def _oil(self, x: int, y: int, i: int) -> None:
        self.do_density_liquid(x, y, i, BUILTIN_IDS["WATER"], 0.9, 0.7)

    def _steam(self, x: int, y: int, i: int) -> None:
        if self.rng.random() < 0.005:
            self.cells[i] = BUILTIN_IDS["WATER"]
            return
        self.do_rise(x, y, i, 0.9, 0.7)

    def _fire(self, x: int, y: int, i: int) -> None:
        flammable = (BUILTIN_IDS["PLANT"], BUILTIN_IDS["OIL"], BUILTIN_IDS["GUNPOWDER"], BUILTIN_IDS["WAX"])
        for j in (i - 1, i + 1, i - self.width, i + self.width):
            if 0 <= j < len(self.cells) and self.cells[j] in flammable and self.rng.random() < 0.3:
                self.cells[j] = BUILTIN_IDS["FIRE"]
        if self.rng.random() < 0.1:
            self.cells[i] = BACKGROUND


def _static(x: int, y: int, i: int) -> None:
    return None
