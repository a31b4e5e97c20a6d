"""
Particle forge.

Ties generation to registration. Synchronous ``create`` runs both steps;
``submit`` runs generation on a worker thread so the tick loop never waits,
and ``pump`` (called by the tick loop between ticks) registers whatever has
finished. Registration therefore always happens on the tick thread.
"""

import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from .errors import GenerationError, SandforgeError
from .generator import ParticleGenerator, sample_particle
from .particle import ParticleDescription
from .registry import ParticleRegistry


@dataclass
class ForgeResult:
    """Outcome of one submitted request."""
    name: str
    color_id: Optional[int] = None
    error: Optional[SandforgeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ParticleForge:
    """
    Front door for creating particles from names.
    """

    def __init__(self, registry: ParticleRegistry,
                 generator: Optional[ParticleGenerator] = None,
                 max_workers: int = 2):
        """
        Initialize the forge.

        Args:
            registry: Registry new particles are registered into
            generator: Generator used for names; optional for offline use
            max_workers: Worker threads for background generation
        """
        self.registry = registry
        self.generator = generator
        self.status_message = ""
        self.error_message = ""

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sandforge-gen")
        self._completed: "queue.Queue[tuple]" = queue.Queue()

    def create(self, particle_name: str) -> int:
        """
        Generate and register a particle.

        Raises:
            GenerationError: If generation fails (registry untouched)
            RegistrationError: If the fragment cannot be compiled
        """
        description = self._generate(particle_name)
        return self.register(description)

    def register(self, description: ParticleDescription) -> int:
        try:
            color_id = self.registry.register(description)
        except SandforgeError as e:
            self.error_message = f"Error registering particle: {e}"
            logger.error(f"Failed to register particle {description.name}: {e}")
            raise
        self.status_message = f"Successfully generated {description.name}!"
        return color_id

    def register_sample(self) -> int:
        """Register the built-in TNT sample without calling a model."""
        self.status_message = "Creating test particle..."
        return self.register(sample_particle())

    def submit(self, particle_name: str) -> Future:
        """
        Start generating a particle in the background.

        The returned future resolves to the description (or raises
        GenerationError); registration happens on the next ``pump``.
        """
        name = (particle_name or "").strip().upper()
        self.status_message = f"Generating {name} particle..."
        return self._executor.submit(self._generate_queued, name)

    def pump(self) -> List[ForgeResult]:
        """Register every finished background request. Call from the tick loop."""
        results = []
        while True:
            try:
                name, description, error = self._completed.get_nowait()
            except queue.Empty:
                break

            if error is not None:
                if not isinstance(error, SandforgeError):
                    error = GenerationError(str(error), particle_name=name)
                self.error_message = f"Error: {error}"
                logger.error(f"Particle generation error for {name}: {error}")
                results.append(ForgeResult(name=name, error=error))
                continue

            try:
                color_id = self.register(description)
            except SandforgeError as e:
                results.append(ForgeResult(name=name, error=e))
                continue
            results.append(ForgeResult(name=name, color_id=color_id))
        return results

    def pending(self) -> bool:
        return not self._completed.empty()

    def descriptions(self):
        return self.registry.descriptions()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _generate_queued(self, particle_name: str) -> ParticleDescription:
        # queued before the future resolves, so pump() after result() sees it
        try:
            description = self._generate(particle_name)
        except Exception as e:
            self._completed.put((particle_name, None, e))
            raise
        self._completed.put((particle_name, description, None))
        return description

    def _generate(self, particle_name: str) -> ParticleDescription:
        if self.generator is None:
            raise GenerationError("No generator configured. Please provide an API key.",
                                  particle_name=particle_name)
        try:
            return self.generator.generate(particle_name)
        except GenerationError as e:
            self.error_message = str(e)
            raise

    def __enter__(self) -> "ParticleForge":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def build_forge(config=None, grid=None, llm_wrapper=None) -> ParticleForge:
    """
    Assemble grid, pipeline, registry and generator from a ForgeConfig.

    Without an ``llm_wrapper`` a wrapper is created only when an API key is
    available; otherwise the forge works offline (samples only).
    """
    from ..controllers.rewriter import FragmentRewriter
    from ..controllers.uniqueness import UniquenessValidator
    from ..simulation.grid import SandGrid
    from ..utils.categories import CategoryTable
    from ..utils.config import ForgeConfig
    from ..utils.llm_wrapper import LLMWrapper
    from .executor import ActionWrapper

    config = config or ForgeConfig()
    grid = grid or SandGrid(config.grid_width, config.grid_height)
    categories = CategoryTable(config.categories_path)

    registry = ParticleRegistry(
        grid,
        categories=categories,
        validator=UniquenessValidator(categories, threshold=config.similarity_threshold),
        rewriter=FragmentRewriter(categories, min_length=config.trivial_length),
        wrapper=ActionWrapper(
            grid.namespace(),
            categories,
            noise_probability=config.noise_probability,
            slow_threshold_ms=config.slow_threshold_ms,
        ),
        id_offset=config.custom_id_offset,
    )

    if llm_wrapper is None and (config.resolve_api_key() or config.provider == "litellm"):
        llm_wrapper = LLMWrapper(
            model_name=config.model_name,
            provider=config.provider,
            api_key=config.resolve_api_key(),
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            reasoning_effort=config.reasoning_effort,
            timeout=config.request_timeout,
        )
    generator = ParticleGenerator(llm_wrapper, categories) if llm_wrapper is not None else None
    return ParticleForge(registry, generator)
