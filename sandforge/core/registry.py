"""
Particle registry.

Owns the name -> id index for generated particle types and drives each
description through validation, sanitizing, rewriting and wrapping before
binding the resulting action into the grid's element/action tables.
"""

import time
from typing import Dict, List, Optional

from loguru import logger

from ..controllers.rewriter import FragmentRewriter
from ..controllers.sanitizer import FragmentSanitizer
from ..controllers.uniqueness import UniquenessValidator
from ..simulation.elements import CUSTOM_ID_OFFSET
from ..utils.categories import CategoryTable
from .executor import ActionWrapper, SafeAction
from .particle import ParticleDescription, RegistryEntry


class ParticleRegistry:
    """
    Registry of generated particle types.

    Ids come from a counter seeded above the built-in range and are never
    reused. Re-registering a name keeps its id and only swaps the action,
    so cells already painted with that id pick up the new behavior.
    """

    def __init__(self, grid,
                 categories: Optional[CategoryTable] = None,
                 validator: Optional[UniquenessValidator] = None,
                 sanitizer: Optional[FragmentSanitizer] = None,
                 rewriter: Optional[FragmentRewriter] = None,
                 wrapper: Optional[ActionWrapper] = None,
                 id_offset: int = CUSTOM_ID_OFFSET):
        """
        Initialize the registry.

        Args:
            grid: Simulation exposing namespace(), register_element(), replace_action()
            categories: Keyword table shared by the pipeline stages
            validator: Uniqueness validator and color adjuster
            sanitizer: Fragment sanitizer
            rewriter: Semantic rewriter
            wrapper: Action compiler bound to the grid's primitives
            id_offset: First id handed to a custom particle
        """
        self.grid = grid
        self.categories = categories or CategoryTable()
        self.validator = validator or UniquenessValidator(self.categories)
        self.sanitizer = sanitizer or FragmentSanitizer()
        self.rewriter = rewriter or FragmentRewriter(self.categories)
        self.wrapper = wrapper or ActionWrapper(grid.namespace(), self.categories)

        self._next_id = id_offset
        self._ids: Dict[str, int] = {}
        self._entries: Dict[int, RegistryEntry] = {}

        logger.info(f"Initialized ParticleRegistry (custom ids from {id_offset})")

    def register(self, description: ParticleDescription) -> int:
        """
        Register a new particle or update an existing one.

        Args:
            description: Generated particle description

        Returns:
            The particle's color id

        Raises:
            RegistrationError: If the processed fragment does not compile
        """
        name = description.name
        existing = self._ids.get(name)
        color_id = existing if existing is not None else self._next_id

        description, _ = self.validator.ensure_unique(description)
        source, action = self._build_action(description, color_id)

        if existing is not None:
            entry = self._entries[existing]
            entry.action = action
            entry.description = description
            entry.source = source
            entry.revision += 1
            entry.updated_at = time.time()
            self.grid.replace_action(existing, action)
            logger.info(f"Particle {name} already exists, updated it (id {existing}, revision {entry.revision})")
            return existing

        # the id is consumed only once the action compiled
        self._next_id += 1
        self._ids[name] = color_id
        self._entries[color_id] = RegistryEntry(
            name=name,
            color_id=color_id,
            action=action,
            description=description,
            source=source,
        )
        self.grid.register_element(color_id, action)
        logger.info(f"Successfully registered {name} particle with id {color_id}")
        return color_id

    def process(self, description: ParticleDescription, color_id: int) -> str:
        """Run sanitizing and rewriting for a description against an id."""
        sanitized = self.sanitizer.sanitize(description.action_code)
        return self.rewriter.rewrite(sanitized, description.name, color_id)

    def _build_action(self, description: ParticleDescription, color_id: int):
        source = self.process(description, color_id)
        action = self.wrapper.wrap(source, description.name)
        return source, action

    def lookup(self, name: str) -> Optional[int]:
        """Return the color id registered for a name, if any."""
        return self._ids.get(name.strip().upper())

    def get(self, name: str) -> Optional[RegistryEntry]:
        color_id = self.lookup(name)
        return None if color_id is None else self._entries[color_id]

    def entry_for_id(self, color_id: int) -> Optional[RegistryEntry]:
        return self._entries.get(color_id)

    def entries(self) -> List[RegistryEntry]:
        """Entries in registration order."""
        return [self._entries[color_id] for color_id in sorted(self._entries)]

    def descriptions(self) -> Dict[str, ParticleDescription]:
        """Currently registered descriptions by name, for display."""
        return {entry.name: entry.description for entry in self.entries()}

    def stats(self) -> Dict[str, dict]:
        """Action telemetry by particle name."""
        return {
            entry.name: entry.action.stats.to_dict()
            for entry in self.entries()
            if isinstance(entry.action, SafeAction)
        }

    @property
    def next_id(self) -> int:
        return self._next_id

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._entries)
