"""
Command-line interface for sandforge.
"""

import argparse
import sys

from loguru import logger

from .core.errors import SandforgeError
from .core.forge import build_forge
from .simulation.elements import BUILTIN_IDS, BUILTIN_NAMES
from .simulation.grid import SandGrid
from .utils.config import ForgeConfig


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="sandforge: generated particle behaviors for a falling sand simulation"
    )

    parser.add_argument(
        "name",
        nargs="?",
        help="Particle name to generate"
    )

    parser.add_argument(
        "--sample",
        action="store_true",
        help="Register the built-in TNT sample instead of calling a model"
    )

    parser.add_argument(
        "--ticks",
        type=int,
        default=100,
        help="Ticks to simulate after registering (default: 100)"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to a YAML config file"
    )

    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic", "litellm"],
        help="LLM provider (default: openai)"
    )

    parser.add_argument(
        "--model",
        type=str,
        help="Model to use (default: o3-mini)"
    )

    parser.add_argument(
        "--api-key",
        type=str,
        help="API key (or set environment variable)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the grid's random source"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG")

    if not args.name and not args.sample:
        parser.error("give a particle name or --sample")

    config = ForgeConfig.from_yaml(args.config) if args.config else ForgeConfig.from_env()
    if args.provider:
        config.provider = args.provider
    if args.model:
        config.model_name = args.model
    if args.api_key:
        config.api_key = args.api_key

    grid = SandGrid(config.grid_width, config.grid_height, seed=args.seed)
    forge = build_forge(config, grid=grid)

    try:
        if args.sample:
            color_id = forge.register_sample()
            name = "TNT"
        else:
            if forge.generator is None:
                logger.error("No API key provided. Set OPENAI_API_KEY or ANTHROPIC_API_KEY, or use --api-key")
                sys.exit(1)
            name = args.name.strip().upper()
            color_id = forge.create(name)
    except SandforgeError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    finally:
        forge.close()

    seed_scene(grid, color_id)
    grid.run(args.ticks)
    print_report(forge, grid, name, color_id)


def seed_scene(grid: SandGrid, color_id: int) -> None:
    """Floor, a block of the new particle, and a fire source beside it."""
    w, h = grid.width, grid.height
    grid.fill(0, h - 1, w - 1, h - 1, BUILTIN_IDS["WALL"])
    grid.fill(w // 2 - 4, 2, w // 2 + 4, 10, color_id)
    grid.fill(w // 2 + 8, h - 4, w // 2 + 10, h - 2, BUILTIN_IDS["FIRE"])
    grid.fill(w // 2 - 12, h - 6, w // 2 - 8, h - 2, BUILTIN_IDS["WATER"])


def print_report(forge, grid: SandGrid, name: str, color_id: int) -> None:
    entry = forge.registry.get(name)
    print(f"\n{name} -> id {color_id}, color {entry.description.color}")
    print(f"Behavior: {entry.description.behavior or '(none)'}")
    print("\nAction code:")
    print(entry.source)
    print(f"\nCensus after {grid.tick_count} ticks:")
    names = {BUILTIN_IDS[n]: n for n in BUILTIN_NAMES}
    names.update({e.color_id: e.name for e in forge.registry.entries()})
    for element_id, count in sorted(grid.census().items(), key=lambda item: -item[1]):
        print(f"  {names.get(element_id, element_id):<12} {count}")
    print("\nTelemetry:")
    for particle, stats in forge.registry.stats().items():
        print(f"  {particle}: {stats}")


if __name__ == "__main__":
    main()
