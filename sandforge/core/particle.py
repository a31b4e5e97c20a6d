"""
Particle description and registry entry types.

A ParticleDescription is what the generator hands to the pipeline; a
RegistryEntry is what the registry keeps for the lifetime of the process.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union

from pydantic import BaseModel, Field, field_validator


class ParticleDescription(BaseModel):
    """Schema for a generated particle."""

    name: str = Field(..., min_length=1, description="Particle name, upper-cased")
    color: List[int] = Field(..., description="RGB triple, each channel in [0, 255]")
    behavior: str = Field("", description="Natural-language behavior (advisory)")
    interactions: Union[Dict[str, str], str] = Field(
        default_factory=dict, description="Interactions with other elements (advisory)"
    )
    action_code: str = Field(..., description="Per-cell update fragment")

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("color", mode="before")
    @classmethod
    def _clamp_color(cls, value: Any) -> List[int]:
        if not isinstance(value, (list, tuple)) or len(value) != 3:
            raise ValueError("color must be an array of 3 numbers [r, g, b]")
        channels = []
        for channel in value:
            try:
                number = int(float(channel))
            except (TypeError, ValueError, OverflowError):
                raise ValueError(f"color channel is not a number: {channel!r}")
            channels.append(max(0, min(255, number)))
        return channels


@dataclass
class RegistryEntry:
    """A registered particle type."""
    name: str
    color_id: int
    action: Callable[[int, int, int], None]
    description: ParticleDescription
    source: str = ""  # processed fragment the action was compiled from
    revision: int = 1
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
