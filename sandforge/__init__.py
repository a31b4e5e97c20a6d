"""
sandforge

Runtime-defined particle behaviors for a falling sand simulation:
- A text-generation model describes a particle from its name
- The description's code fragment is sanitized, rewritten and compiled
  into an action that cannot crash or stall the tick loop
- Each particle gets a stable id in the simulation's element tables
"""

from .core.particle import ParticleDescription, RegistryEntry
from .core.errors import GenerationError, RegistrationError, RuntimeActionError, SandforgeError
from .core.executor import ActionWrapper, SafeAction
from .core.registry import ParticleRegistry
from .core.generator import ParticleGenerator, sample_particle
from .core.forge import ParticleForge, build_forge
from .controllers.sanitizer import FragmentSanitizer
from .controllers.rewriter import FragmentRewriter
from .controllers.uniqueness import UniquenessValidator
from .simulation.grid import SandGrid
from .utils.categories import CategoryTable
from .utils.config import ForgeConfig
from .utils.llm_wrapper import LLMWrapper

__version__ = "0.1.0"
__author__ = "sandforge Team"

__all__ = [
    "ParticleDescription",
    "RegistryEntry",
    "SandforgeError",
    "GenerationError",
    "RegistrationError",
    "RuntimeActionError",
    "ActionWrapper",
    "SafeAction",
    "ParticleRegistry",
    "ParticleGenerator",
    "sample_particle",
    "ParticleForge",
    "build_forge",
    "FragmentSanitizer",
    "FragmentRewriter",
    "UniquenessValidator",
    "SandGrid",
    "CategoryTable",
    "ForgeConfig",
    "LLMWrapper",
]
