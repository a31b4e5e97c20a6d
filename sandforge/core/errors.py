"""
Exception types for the particle pipeline.

Only GenerationError and RegistrationError cross the pipeline boundary.
RuntimeActionError is recorded in action telemetry and never raised past
the outer execution layer.
"""

from typing import Optional


class SandforgeError(Exception):
    """Base class for all pipeline errors."""


class GenerationError(SandforgeError):
    """The generator failed or returned an unusable description."""

    def __init__(self, message: str, particle_name: Optional[str] = None):
        super().__init__(message)
        self.particle_name = particle_name


class RegistrationError(SandforgeError):
    """A processed fragment could not be compiled into an action."""

    def __init__(self, message: str, particle_name: Optional[str] = None,
                 source: Optional[str] = None):
        super().__init__(message)
        self.particle_name = particle_name
        self.source = source


class RuntimeActionError(SandforgeError):
    """An exception escaped a compiled action during one tick."""

    def __init__(self, particle_name: str, x: int, y: int, i: int, cause: BaseException):
        super().__init__(f"{particle_name} failed at ({x}, {y}): {cause}")
        self.particle_name = particle_name
        self.position = (x, y, i)
        self.cause = cause
