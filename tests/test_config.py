import pytest

from sandforge.utils.categories import CategoryTable
from sandforge.utils.config import ForgeConfig


def test_defaults():
    config = ForgeConfig()
    assert config.provider == "openai"
    assert config.model_name == "o3-mini"
    assert config.custom_id_offset == 64
    assert config.similarity_threshold == 60.0
    assert config.trivial_length == 50


def test_from_env_casts_values():
    config = ForgeConfig.from_env({
        "SANDFORGE_MODEL_NAME": "gpt-4o-mini",
        "SANDFORGE_SIMILARITY_THRESHOLD": "40",
        "SANDFORGE_CUSTOM_ID_OFFSET": "128",
        "SANDFORGE_GRID_WIDTH": "wide",
    })
    assert config.model_name == "gpt-4o-mini"
    assert config.similarity_threshold == 40.0
    assert config.custom_id_offset == 128
    assert config.grid_width == 64


def test_from_yaml(tmp_path):
    path = tmp_path / "sandforge.yaml"
    path.write_text("provider: anthropic\nmodel_name: claude-test\nnoise_probability: 0.05\nunknown: 1\n")
    config = ForgeConfig.from_yaml(path)
    assert config.provider == "anthropic"
    assert config.model_name == "claude-test"
    assert config.noise_probability == 0.05

    with pytest.raises(FileNotFoundError):
        ForgeConfig.from_yaml(tmp_path / "missing.yaml")


def test_resolve_api_key(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-oai")
    assert ForgeConfig(provider="anthropic").resolve_api_key() == "sk-ant"
    assert ForgeConfig().resolve_api_key() == "sk-oai"
    assert ForgeConfig(api_key="explicit").resolve_api_key() == "explicit"


def test_category_table_defaults():
    table = CategoryTable()
    assert table.classify("templates", "BLACK_SMOKE") == "gas"
    assert table.classify("templates", "CLOUD") is None
    assert table.matches("explosive", "nitro_bomb")
    assert table.keywords("templates", "hair") == ["HAIR", "FUR", "STRING", "FIBER"]
    with pytest.raises(ValueError):
        table.keywords("templates")


def test_category_table_from_mapping():
    table = CategoryTable({"templates": {"gas": ["cloud"]}, "explosive": ["boom"]})
    assert table.classify("templates", "STORM_CLOUD") == "gas"
    assert table.matches("explosive", "BOOMSTICK")
    assert table.keywords("missing") == []
