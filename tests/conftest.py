"""
Shared fixtures: a small seeded grid, the pipeline built on it, and an
in-process stand-in for the model client.
"""

import json

import pytest

from sandforge.core.executor import ActionWrapper
from sandforge.core.generator import ParticleGenerator
from sandforge.core.registry import ParticleRegistry
from sandforge.simulation.grid import SandGrid
from sandforge.utils.categories import CategoryTable
from sandforge.utils.llm_wrapper import LLMWrapper


class ScriptedClient:
    """Client for the "custom" provider that replays canned replies."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    def generate(self, prompt, system_prompt=None, **kwargs):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return {"content": reply}


def particle_reply(name="SLIME", color=(90, 30, 160), action_code=None, **extra):
    data = {
        "name": name,
        "color": list(color),
        "behavior": f"{name} oozes downward",
        "interactions": {"WATER": "floats", "FIRE": "burns"},
        "action_code": action_code or (
            "if below(y, i, BACKGROUND):\n"
            "    do_gravity(x, y, i, False, 0.5)\n"
            "elif random() < 0.3:\n"
            "    do_density_liquid(x, y, i, SAND, 0.2, 0.3)\n"
        ),
    }
    data.update(extra)
    return "```json\n" + json.dumps(data) + "\n```"


@pytest.fixture
def categories():
    return CategoryTable()


@pytest.fixture
def grid():
    return SandGrid(16, 16, seed=7)


@pytest.fixture
def wrapper(grid, categories):
    # no noise so fragment effects are deterministic
    return ActionWrapper(grid.namespace(), categories, noise_probability=0.0)


@pytest.fixture
def registry(grid, categories):
    return ParticleRegistry(grid, categories=categories)


@pytest.fixture
def scripted_llm():
    def build(*replies):
        client = ScriptedClient(replies)
        return LLMWrapper(model_name="test-model", provider="custom", client=client), client
    return build


@pytest.fixture
def generator(scripted_llm, categories):
    llm, _ = scripted_llm(particle_reply())
    return ParticleGenerator(llm, categories)
