"""
Semantic rewriter for sanitized fragments.

Patches the gap between what the generator is told it may reference and what
the simulation actually exposes: trivial fragments get a name-plausible
template, self-references become the particle's id, aggregate fire checks
become explicit contact checks, unknown neighbor-write targets are mapped to
FIRE, and explosive names are guaranteed a fire reaction.
"""

import re
import textwrap
from typing import Iterable, Optional

from loguru import logger

from ..simulation.elements import BUILTIN_NAMES
from ..utils.categories import CategoryTable
from . import templates
from .templates import DEGENERATE_FRAGMENT, is_degenerate

SELF_TOKEN = "THIS_ELEMENT_COLOR"
ALWAYS_SAFE_TARGETS = ("FIRE", "BACKGROUND")

_NON_WHITESPACE = re.compile(r"\s")
_BORDERING_FIRE = re.compile(r"\bbordering\s*\(\s*x\s*,\s*y\s*,\s*i\s*,\s*FIRE\s*\)")
_FIRE_CONTACT = "(adjacent(x, i, FIRE) or below(y, i, FIRE) or above(y, i, FIRE))"


class FragmentRewriter:
    """
    Rewrites sanitized fragments for this simulation's calling convention.
    """

    def __init__(self, categories: Optional[CategoryTable] = None,
                 known_elements: Optional[Iterable[str]] = None,
                 min_length: int = 50,
                 buffer_name: str = "cells"):
        """
        Initialize the rewriter.

        Args:
            categories: Keyword table for template and explosive dispatch
            known_elements: Element names that are valid write targets
            min_length: Non-whitespace length below which a fragment is trivial
            buffer_name: Name of the shared cell buffer inside fragments
        """
        self.categories = categories or CategoryTable()
        self.known_elements = set(known_elements if known_elements is not None else BUILTIN_NAMES)
        self.min_length = min_length
        self._neighbor_write = re.compile(
            r"(\b" + re.escape(buffer_name)
            + r"[ \t]*\[[ \t]*i[ \t]*[+-][^\]\n]*\][ \t]*=(?!=)[ \t]*)"
            r"([A-Z_][A-Z0-9_]*)(?=[ \t]*(?:$|#|;))",
            re.MULTILINE,
        )

    def rewrite(self, text: str, particle_name: str, color_id: int) -> str:
        """
        Apply all semantic patches.

        Args:
            text: Sanitized fragment
            particle_name: Particle name (any case)
            color_id: Id assigned to the particle

        Returns:
            Patched fragment
        """
        name = particle_name.upper()

        if self.is_trivial(text):
            logger.info(f"Action code for {name} is too simple, enhancing based on name")
            text = self.template_for(name, color_id)
        else:
            text = self._mark_self_references(text, name)
        text = _BORDERING_FIRE.sub(_FIRE_CONTACT, text)
        text = self._check_neighbor_writes(text, color_id)
        text = re.sub(r"\b" + SELF_TOKEN + r"\b", str(color_id), text)
        text = self._inject_explosion(text, name)
        return text

    def is_trivial(self, text: str) -> bool:
        stripped = _NON_WHITESPACE.sub("", text or "")
        return len(stripped) < self.min_length or is_degenerate(text or "", (DEGENERATE_FRAGMENT,))

    def template_for(self, name: str, color_id: int) -> str:
        """Return the behavior template for a name's category."""
        # Unmatched names (CLOUD) do not pass through unchanged: a trivial
        # fragment must still come back branching, so they get the generic one.
        category = self.categories.classify("templates", name)
        if category == "hair":
            return templates.HAIR_TEMPLATE.format(name=name, color_id=color_id)
        if category == "gas":
            return templates.GAS_TEMPLATE.format(name=name, color_id=color_id)
        if category == "liquid":
            floats = self.categories.matches("liquid_variants", name, "floats")
            flammable = self.categories.matches("liquid_variants", name, "flammable")
            return templates.LIQUID_TEMPLATE.format(
                name=name,
                color_id=color_id,
                heavier="WATER" if floats else "SAND",
                fire_product="FIRE" if flammable else "STEAM",
            )
        return templates.GENERIC_TEMPLATE.format(name=name, color_id=color_id)

    def _mark_self_references(self, text: str, name: str) -> str:
        forms = {name, re.sub(r"\W+", "_", name).strip("_")}
        for form in sorted(f for f in forms if f):
            text = re.sub(r"(?<![\w.])" + re.escape(form) + r"(?!\w)", SELF_TOKEN, text)
        return text

    def _check_neighbor_writes(self, text: str, color_id: int) -> str:
        def classify(match: re.Match) -> str:
            prefix, target = match.group(1), match.group(2)
            if target in ALWAYS_SAFE_TARGETS:
                return match.group(0)
            if target == SELF_TOKEN:
                return prefix + str(color_id)
            if target in self.known_elements:
                return match.group(0)
            # unknown target: most plausibly an explosion/transformation effect
            logger.debug(f"Replacing unknown neighbor write target {target} with FIRE")
            return prefix + "FIRE"

        return self._neighbor_write.sub(classify, text)

    def _inject_explosion(self, text: str, name: str) -> str:
        if not self.categories.matches("explosive", name):
            return text
        if "FIRE" in text or "fire" in text:
            return text
        logger.info(f"Adding fire reaction to explosive particle {name}")
        # trailing pass keeps a comment-only body syntactically valid
        body = textwrap.indent(text.strip("\n") + "\npass", "    ")
        return templates.EXPLOSION_TEMPLATE.format(body=body).rstrip("\n")
