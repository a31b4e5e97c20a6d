"""
Configuration for sandforge.

Settings come from constructor arguments, a YAML file, or SANDFORGE_*
environment variables. API keys fall back to the provider's usual variable.
"""

import os
import yaml
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

ENV_PREFIX = "SANDFORGE_"


@dataclass
class ForgeConfig:
    """Tunable settings for the generator and the behavior pipeline."""
    provider: str = "openai"
    model_name: str = "o3-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    reasoning_effort: Optional[str] = "high"
    max_tokens: int = 4000
    request_timeout: float = 120.0

    custom_id_offset: int = 64
    similarity_threshold: float = 60.0
    trivial_length: int = 50
    noise_probability: float = 0.1
    slow_threshold_ms: float = 5.0
    categories_path: Optional[str] = None

    grid_width: int = 64
    grid_height: int = 64

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.provider == "anthropic":
            return os.getenv("ANTHROPIC_API_KEY")
        return os.getenv("OPENAI_API_KEY")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForgeConfig":
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = value
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ForgeConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ForgeConfig":
        """Build a config from SANDFORGE_* variables, casting to the field types."""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            default = f.default
            try:
                if isinstance(default, bool):
                    values[f.name] = raw.lower() not in ("0", "false", "no", "")
                elif isinstance(default, int):
                    values[f.name] = int(raw)
                elif isinstance(default, float):
                    values[f.name] = float(raw)
                else:
                    values[f.name] = raw
            except ValueError:
                logger.warning(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}; using default")
        return cls(**values)
