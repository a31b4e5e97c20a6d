import json

import pytest

from conftest import particle_reply
from sandforge.core.errors import GenerationError
from sandforge.core.generator import ParticleGenerator, extract_json, sample_particle


def test_generate_parses_fenced_reply(generator):
    description = generator.generate("slime")
    assert description.name == "SLIME"
    assert description.color == [90, 30, 160]
    assert "do_gravity" in description.action_code
    assert generator.generated["SLIME"] is description


def test_generate_corrects_returned_name(scripted_llm, categories):
    llm, _ = scripted_llm(particle_reply(name="Goo"))
    description = ParticleGenerator(llm, categories).generate("slime")
    assert description.name == "SLIME"


def test_prompt_carries_category_hint(scripted_llm, categories):
    llm, client = scripted_llm(particle_reply(name="MEGA_BOMB"))
    ParticleGenerator(llm, categories).generate("mega_bomb")
    assert "MUST explode when touching FIRE" in client.prompts[0]
    assert "MEGA_BOMB" in client.prompts[0]


@pytest.mark.parametrize("reply, message", [
    ("", "Empty response"),
    ("I cannot help with that.", "Failed to parse"),
    ('{"name": "SLIME", "color": [1, 2, 3]', "Failed to parse"),
    (json.dumps({"name": "SLIME", "color": [1, 2, 3]}), "missing required fields"),
    (json.dumps({"name": "SLIME", "color": [1, 2], "action_code": "pass"}), "Invalid particle description"),
    (json.dumps({"name": "SLIME", "color": ["red", 0, 0], "action_code": "pass"}), "Invalid particle description"),
    ('{"name": "SLIME", "color": [1e400, 0, 0], "action_code": "pass"}', "Invalid particle description"),
    ('{"name": "SLIME", "color": [Infinity, 0, 0], "action_code": "pass"}', "Invalid particle description"),
])
def test_unusable_replies_raise_generation_error(scripted_llm, categories, reply, message):
    llm, _ = scripted_llm(reply)
    with pytest.raises(GenerationError) as excinfo:
        ParticleGenerator(llm, categories).generate("slime")
    assert message in str(excinfo.value)
    assert excinfo.value.particle_name == "SLIME"


def test_transport_failure_becomes_generation_error(scripted_llm, categories):
    llm, _ = scripted_llm(ConnectionError("connection reset"))
    generator = ParticleGenerator(llm, categories)
    with pytest.raises(GenerationError) as excinfo:
        generator.generate("slime")
    assert str(excinfo.value).startswith("API Error:")
    assert generator.generated == {}


def test_empty_name_is_rejected(generator):
    with pytest.raises(GenerationError):
        generator.generate("   ")


def test_color_channels_are_clamped(scripted_llm, categories):
    llm, _ = scripted_llm(particle_reply(color=(300, -5, 12.7)))
    description = ParticleGenerator(llm, categories).generate("slime")
    assert description.color == [255, 0, 12]


def test_interactions_may_be_text(scripted_llm, categories):
    llm, _ = scripted_llm(particle_reply(interactions="burns in fire"))
    description = ParticleGenerator(llm, categories).generate("slime")
    assert description.interactions == "burns in fire"


def test_extract_json_from_prose():
    data = extract_json('Sure! Here it is: {"name": "GOO", "color": [1, 2, 3]} Enjoy.')
    assert data["name"] == "GOO"
    with pytest.raises(ValueError):
        extract_json("[1, 2, 3]")


def test_sample_particle():
    description = sample_particle()
    assert description.name == "TNT"
    assert description.color == [255, 60, 30]
    assert "FIRE" in description.action_code
