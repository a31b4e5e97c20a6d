"""
Particle generator.

Asks a text-generation model for a particle description and turns the reply
into a ParticleDescription. Any transport failure, non-JSON reply, missing
field or malformed color surfaces as GenerationError; nothing is registered.
"""

import json
import re
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError

from ..controllers.templates import SAMPLE_TNT_CODE
from ..utils.categories import CategoryTable
from .errors import GenerationError
from .particle import ParticleDescription

REQUIRED_FIELDS = ("name", "color", "action_code")

CATEGORY_HINTS = {
    "explosive": "It MUST explode when touching FIRE, turning nearby cells into FIRE or BACKGROUND, "
                 "and should fall like a solid until triggered.",
    "liquid": "It should flow and spread sideways, with a viscosity that fits, and may float or sink in WATER.",
    "gas": "It should rise against gravity, spread as it rises and may slowly dissipate.",
    "creature": "It should move on its own the way this creature moves and react to its surroundings.",
    "metal": "It should be heavy, fall straight down quickly and resist fire, maybe melting near LAVA.",
    "food": "It should have a fitting consistency and burn or cook near FIRE.",
}

PROMPT_TEMPLATE = """Create a new particle named {name} for a falling sand game. \
It must look, behave and interact in ways that are immediately recognizable as "{name}" \
and must NOT copy an existing element.

{hint}

Built-in colors to stay away from: FIRE [255, 0, 10], WATER [0, 10, 255], PLANT [0, 220, 0], \
SAND [223, 193, 99], WALL [127, 127, 127], OIL [150, 60, 0], LAVA [245, 110, 40], ICE [200, 200, 255].

Reply with a JSON object only:
{{
  "name": "{name}",
  "color": [r, g, b],
  "behavior": "how {name} moves",
  "interactions": {{"SAND": "...", "WATER": "...", "FIRE": "...", "PLANT": "...", "OIL": "..."}},
  "action_code": "Python statements run once per {name} cell per tick"
}}

action_code is the body of a function taking x, y, i (column, row, cell index). It may use:
- do_gravity(x, y, i, allow_diagonal, chance): fall
- do_density_liquid(x, y, i, HEAVIER_ELEMENT, sink_chance, equalize_chance): flow like a liquid
- do_rise(x, y, i, rise_chance, adjacent_chance): rise
- random(): number in [0, 1)
- below(y, i, KIND), above(y, i, KIND), adjacent(x, i, KIND), bordering(x, y, i, KIND): contact checks
- cells[i] = BACKGROUND removes the particle; cells[i + 1], cells[i - 1], cells[i + width], cells[i - width] are neighbors
- element names: BACKGROUND, WALL, SAND, WATER, PLANT, FIRE, SALT, OIL, ICE, LAVA, STEAM, GUNPOWDER, C4

Example (TNT):
if bordering(x, y, i, FIRE):
    cells[i] = FIRE
    if i + 1 < len(cells): cells[i + 1] = FIRE
    if i - 1 >= 0: cells[i - 1] = FIRE
else:
    do_gravity(x, y, i, True, 0.9)

Keep action_code 5-15 lines, no loops, no function definitions, no imports."""

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_ANY_FENCE = re.compile(r"```\s*([\s\S]*?)\s*```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json(content: str) -> Dict[str, Any]:
    """
    Extract the JSON object from a model reply.

    Args:
        content: Raw reply, possibly fenced or surrounded by prose

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no JSON object can be parsed
    """
    text = content.strip()
    fenced = _JSON_FENCE.search(text) or _ANY_FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    if not (text.startswith("{") and text.endswith("}")):
        obj = _JSON_OBJECT.search(text)
        if not obj:
            raise ValueError("Could not extract valid JSON from the response")
        logger.warning("JSON string format issue, extracted object from surrounding text")
        text = obj.group(0)

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class ParticleGenerator:
    """
    Generates particle descriptions with an LLM.
    """

    def __init__(self, llm_wrapper, categories: Optional[CategoryTable] = None):
        """
        Initialize the generator.

        Args:
            llm_wrapper: LLMWrapper used for generation
            categories: Keyword table for prompt hints
        """
        self.llm_wrapper = llm_wrapper
        self.categories = categories or CategoryTable()
        self.generated: Dict[str, ParticleDescription] = {}

    def categorize(self, particle_name: str) -> str:
        return self.categories.classify("prompt", particle_name) or "generic"

    def build_prompt(self, particle_name: str) -> str:
        category = self.categorize(particle_name)
        hint = CATEGORY_HINTS.get(
            category,
            "If it is a creature it should move like one; a liquid should flow; a gas should rise; "
            "an object should behave like its real-world counterpart.",
        )
        return PROMPT_TEMPLATE.format(name=particle_name, hint=hint)

    def generate(self, particle_name: str) -> ParticleDescription:
        """
        Generate a description for a particle name.

        Args:
            particle_name: Requested name

        Returns:
            Parsed ParticleDescription

        Raises:
            GenerationError: On transport failure or an unusable reply
        """
        name = (particle_name or "").strip().upper()
        if not name:
            raise GenerationError("Please enter a particle name")

        logger.info(f"Generating {name} particle...")
        try:
            response = self.llm_wrapper.generate(self.build_prompt(name))
        except Exception as e:
            raise GenerationError(f"API Error: {e}", particle_name=name) from e

        description = self.parse_response(response.content, name)
        self.generated[name] = description
        logger.info(f"Successfully generated {name} particle")
        return description

    def parse_response(self, content: str, particle_name: str) -> ParticleDescription:
        """
        Turn a model reply into a description for the requested name.

        Raises:
            GenerationError: If the reply is not usable
        """
        name = particle_name.strip().upper()
        if not content or not content.strip():
            raise GenerationError("Empty response from model", particle_name=name)

        try:
            data = extract_json(content)
        except ValueError as e:
            logger.error(f"Failed to parse response: {content[:200]}")
            raise GenerationError(f"Failed to parse model response: {e}", particle_name=name) from e

        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise GenerationError(
                f"Response missing required fields ({', '.join(missing)})", particle_name=name
            )

        returned = str(data["name"]).strip().upper()
        if returned != name:
            logger.warning(f"Model returned name {returned} instead of {name}, correcting")

        interactions = data.get("interactions") or {}
        if isinstance(interactions, dict):
            interactions = {str(k): str(v) for k, v in interactions.items()}
        else:
            interactions = str(interactions)

        try:
            return ParticleDescription(
                name=name,
                color=data["color"],
                behavior=str(data.get("behavior") or ""),
                interactions=interactions,
                action_code=str(data["action_code"]),
            )
        except ValidationError as e:
            raise GenerationError(f"Invalid particle description: {e}", particle_name=name) from e


def sample_particle() -> ParticleDescription:
    """A ready-made TNT description for offline use and testing."""
    return ParticleDescription(
        name="TNT",
        color=[255, 60, 30],
        behavior="Explosive material that detonates when in contact with fire",
        interactions={
            "WATER": "Waterproof, continues to fall in water",
            "FIRE": "Explodes violently when in contact with fire",
            "PLANT": "Falls through plants, can destroy them when exploding",
            "WALL": "Cannot pass through walls, but explosion can damage walls",
        },
        action_code=SAMPLE_TNT_CODE,
    )
