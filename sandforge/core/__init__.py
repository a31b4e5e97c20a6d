"""
Core pipeline: particle types, action compilation, registry, generation.
"""

from .particle import ParticleDescription, RegistryEntry
from .executor import ActionWrapper, SafeAction, ActionStats
from .registry import ParticleRegistry
from .generator import ParticleGenerator
from .forge import ParticleForge, ForgeResult

__all__ = [
    "ParticleDescription",
    "RegistryEntry",
    "ActionWrapper",
    "SafeAction",
    "ActionStats",
    "ParticleRegistry",
    "ParticleGenerator",
    "ParticleForge",
    "ForgeResult",
]
