"""
Execution wrapper and monitor for particle actions.

A processed fragment is compiled into a function with two fallback layers:

- the inner layer is generated around the fragment itself: a fixed noise
  floor of plain gravity, and a stronger gravity fall if the fragment raises;
- the outer layer (SafeAction) times every call, warns about slow calls and
  applies a name-driven fallback if anything escapes the inner layer.

The resulting action never raises, so the tick loop calls it without any
error handling of its own.
"""

import inspect
import itertools
import math
import textwrap
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..utils.categories import CategoryTable
from .errors import RegistrationError, RuntimeActionError

ACTION_NAME = "__particle_action__"
MAX_RANGE = 64

_INNER_LAYER = """\
def {fn}(x, y, i):
    try:
        if random() < {noise}:
            do_gravity(x, y, i, True, 0.9)
            return
{body}
        pass
    except Exception as error:
        log("Error in particle action:", error)
        do_gravity(x, y, i, True, 1.0)
"""


def _log(*args: Any) -> None:
    logger.debug("particle: " + " ".join(str(a) for a in args))


def _bounded_range(*args: int) -> range:
    return range(*args)[:MAX_RANGE]


def _once(iterable: Any) -> list:
    """First element only; loops over it run at most once."""
    return list(itertools.islice(iter(iterable), 1))


def _when(condition: Any) -> tuple:
    return (None,) if condition else ()


SAFE_BUILTINS: Dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
    "sum": sum,
    "range": _bounded_range,
    "print": _log,
    "Exception": Exception,
    "IndexError": IndexError,
    "TypeError": TypeError,
    "ValueError": ValueError,
    "ZeroDivisionError": ZeroDivisionError,
}


@dataclass
class ActionStats:
    """Per-action telemetry."""
    calls: int = 0
    errors: int = 0
    fallback_failures: int = 0
    slow_calls: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    last_error: Optional[RuntimeActionError] = None

    @property
    def mean_ms(self) -> float:
        return self.total_ms / self.calls if self.calls else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calls": self.calls,
            "errors": self.errors,
            "fallback_failures": self.fallback_failures,
            "slow_calls": self.slow_calls,
            "mean_ms": round(self.mean_ms, 4),
            "max_ms": round(self.max_ms, 4),
        }


class SafeAction:
    """
    Outer execution layer.

    Calls the compiled action, measures wall-clock duration, and recovers
    from any exception with a fallback chosen by name keywords.
    """

    def __init__(self, fn: Callable[[int, int, int], Any], particle_name: str,
                 primitives: Dict[str, Any],
                 categories: Optional[CategoryTable] = None,
                 slow_threshold_ms: float = 5.0,
                 source: str = ""):
        self.fn = fn
        self.particle_name = particle_name
        self.primitives = primitives
        self.slow_threshold_ms = slow_threshold_ms
        self.source = source
        self.stats = ActionStats()
        self.category = (categories or CategoryTable()).classify("fallback", particle_name)
        self._fallback = {
            "explosive": self._explode,
            "liquid": self._flow,
            "gas": self._rise,
        }.get(self.category, self._fall)

    def __call__(self, x: int, y: int, i: int) -> None:
        start = time.perf_counter()
        try:
            self.fn(x, y, i)
        except Exception as error:
            self.stats.errors += 1
            self.stats.last_error = RuntimeActionError(self.particle_name, x, y, i, error)
            logger.debug(f"Error in {self.particle_name} particle: {error}")
            try:
                self._fallback(x, y, i)
            except Exception as fallback_error:
                self.stats.fallback_failures += 1
                logger.debug(f"Fallback for {self.particle_name} failed: {fallback_error}")

        duration = (time.perf_counter() - start) * 1000.0
        self.stats.calls += 1
        self.stats.total_ms += duration
        if duration > self.stats.max_ms:
            self.stats.max_ms = duration
        if duration > self.slow_threshold_ms:
            self.stats.slow_calls += 1
            logger.warning(f"{self.particle_name} particle action took {duration:.2f}ms at ({x}, {y})")

    def _explode(self, x: int, y: int, i: int) -> None:
        self.primitives["cells"][i] = self.primitives["FIRE"]

    def _flow(self, x: int, y: int, i: int) -> None:
        self.primitives["do_density_liquid"](x, y, i, self.primitives["SAND"], 0.9, 0.6)

    def _rise(self, x: int, y: int, i: int) -> None:
        self.primitives["do_rise"](x, y, i, 0.9, 0.6)

    def _fall(self, x: int, y: int, i: int) -> None:
        self.primitives["do_gravity"](x, y, i, True, 0.8)

    def __repr__(self) -> str:
        return f"SafeAction({self.particle_name!r}, fallback={self.category or 'gravity'})"


class ActionWrapper:
    """
    Compiles processed fragments into safe actions bound to a primitive set.
    """

    def __init__(self, primitives: Dict[str, Any],
                 categories: Optional[CategoryTable] = None,
                 noise_probability: float = 0.1,
                 slow_threshold_ms: float = 5.0):
        """
        Initialize the wrapper.

        Args:
            primitives: Names fragments may use (grid namespace)
            categories: Keyword table for the outer fallback
            noise_probability: Chance per call of plain gravity instead of the fragment
            slow_threshold_ms: Duration above which a call is reported
        """
        self.primitives = primitives
        self.categories = categories or CategoryTable()
        self.noise_probability = noise_probability
        self.slow_threshold_ms = slow_threshold_ms

    def build_source(self, text: str) -> str:
        """Embed a fragment in the inner fallback layer."""
        body = textwrap.indent(text.strip("\n"), " " * 8)
        return _INNER_LAYER.format(fn=ACTION_NAME, noise=repr(float(self.noise_probability)), body=body)

    def compile(self, text: str, particle_name: str) -> Callable[[int, int, int], Any]:
        """
        Compile a fragment with its inner layer.

        Raises:
            RegistrationError: If the fragment cannot become a plain function
        """
        source = self.build_source(text)
        try:
            code = compile(source, f"<particle {particle_name}>", "exec")
        except (SyntaxError, ValueError, RecursionError, MemoryError) as e:
            logger.error(f"Failed to create action function for {particle_name}: {e}")
            raise RegistrationError(f"Failed to create action function: {e}",
                                    particle_name=particle_name, source=source) from e

        namespace: Dict[str, Any] = dict(self.primitives)
        namespace.update({
            "__builtins__": SAFE_BUILTINS,
            "log": _log,
            "math": math,
            "void_": None,
            "_once": _once,
            "_when": _when,
        })
        exec(code, namespace)  # noqa: S102 - defines the action only
        fn = namespace[ACTION_NAME]

        if inspect.isgeneratorfunction(fn) or inspect.iscoroutinefunction(fn) or inspect.isasyncgenfunction(fn):
            raise RegistrationError("Action must be a plain function (found yield/await)",
                                    particle_name=particle_name, source=source)
        return fn

    def wrap(self, text: str, particle_name: str) -> SafeAction:
        """
        Compile a fragment and add the outer monitoring layer.

        Args:
            text: Processed fragment
            particle_name: Particle name

        Returns:
            SafeAction callable as action(x, y, i)
        """
        fn = self.compile(text, particle_name)
        return SafeAction(
            fn,
            particle_name,
            self.primitives,
            categories=self.categories,
            slow_threshold_ms=self.slow_threshold_ms,
            source=text,
        )
