"""
Uniqueness validator and color adjuster.

Generated particles tend to copy the look (and sometimes the behavior) of
the built-in elements they were shown as examples. The validator flags such
descriptions and the adjuster applies a deterministic color repair. This is
a heuristic: a repaired color can still land near some built-in.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..simulation.elements import BUILTIN_PALETTE
from ..utils.categories import CategoryTable
from .templates import is_degenerate


@dataclass
class ValidationResult:
    """Outcome of a uniqueness check."""
    valid: bool
    reason: str


def color_distance(a: Sequence[int], b: Sequence[int]) -> float:
    """Euclidean distance in RGB space."""
    return math.sqrt(sum((int(p) - int(q)) ** 2 for p, q in zip(a, b)))


def _clamp(value: float) -> int:
    return max(0, min(255, int(round(value))))


class UniquenessValidator:
    """
    Checks generated descriptions against the built-in palette and
    against degenerate behavior, and repairs colors that collide.
    """

    def __init__(self, categories: Optional[CategoryTable] = None,
                 palette: Optional[Dict[str, Tuple[int, int, int]]] = None,
                 threshold: float = 60.0):
        """
        Initialize the validator.

        Args:
            categories: Keyword table used by the color repair rules
            palette: Built-in colors to stay away from
            threshold: Minimum RGB distance to any palette color
        """
        self.categories = categories or CategoryTable()
        self.palette = dict(palette or BUILTIN_PALETTE)
        self.threshold = threshold

    def nearest_builtin(self, color: Sequence[int]) -> Tuple[str, float]:
        """Return the closest palette entry and its distance."""
        return min(
            ((name, color_distance(color, ref)) for name, ref in self.palette.items()),
            key=lambda item: item[1],
        )

    def validate(self, description) -> ValidationResult:
        """
        Check a description for collisions with built-ins.

        Args:
            description: ParticleDescription to check

        Returns:
            ValidationResult with the first reason found
        """
        r, g, b = description.color

        for element, ref in self.palette.items():
            distance = color_distance((r, g, b), ref)
            if distance < self.threshold:
                return ValidationResult(
                    False,
                    f"Color [{r},{g},{b}] is too similar to {element} "
                    f"[{ref[0]},{ref[1]},{ref[2]}] (distance {distance:.1f})",
                )

        code = description.action_code.strip().lower()

        if is_degenerate(code):
            return ValidationResult(False, "Action code is too simple/generic (just basic gravity)")

        name = description.name.lower()

        if "fire" in name and "fire" in code and "water" not in code and "sand" not in code:
            return ValidationResult(False, "Fire-like particle with too generic behavior")

        if "water" in name and "density_liquid" in code and len(code) < 50:
            return ValidationResult(False, "Water-like particle with too generic behavior")

        return ValidationResult(True, "Particle is unique")

    def adjust_color(self, color: Sequence[int], name: str) -> List[int]:
        """
        Shift a color away from the built-in palette.

        Args:
            color: Original RGB triple
            name: Particle name, selects the repair rule

        Returns:
            Adjusted RGB triple, always different from the input
        """
        r, g, b = (int(c) for c in color)
        original = [_clamp(r), _clamp(g), _clamp(b)]

        if self.categories.matches("color", name, "heat"):
            # toward orange / purple instead of pure red
            r, g, b = min(255, r + 20), min(255, g + 80), min(255, b + 120)
        elif self.categories.matches("color", name, "water"):
            # toward cyan instead of pure blue
            r, g, b = min(255, r + 40), min(255, g + 150), max(150, b - 30)
        elif self.categories.matches("color", name, "plant"):
            # toward yellow-green
            r, g, b = min(255, r + 100), max(100, g - 70), min(255, b + 40)
        else:
            peak = max(r, g, b)
            if peak > 0:
                ratio = 255 / peak
                r, g, b = round(r * ratio * 0.8), round(g * ratio * 0.8), round(b * ratio * 0.8)
            r, g, b = 255 - r, 255 - g, 255 - b

        adjusted = [_clamp(r), _clamp(g), _clamp(b)]
        if adjusted == original:
            # saturated inputs survive the rules above unchanged
            adjusted = [255 - c for c in original]
        return adjusted

    def ensure_unique(self, description):
        """
        Validate and, when needed, return a copy with a repaired color.

        Args:
            description: ParticleDescription to check

        Returns:
            Tuple of (description, ValidationResult)
        """
        result = self.validate(description)
        if result.valid:
            return description, result

        logger.warning(f"Generated particle too similar to existing particle: {result.reason}")
        color = self.adjust_color(description.color, description.name)
        logger.info(f"Adjusted color to make {description.name} more unique: {color}")
        return description.model_copy(update={"color": color}), result
