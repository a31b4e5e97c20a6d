"""
Built-in element identities.

Built-in ids are small consecutive integers; custom particles are allocated
ids starting at CUSTOM_ID_OFFSET so the two ranges never overlap.
"""

from typing import Dict, Tuple

BUILTIN_NAMES = (
    "BACKGROUND",
    "WALL",
    "SAND",
    "WATER",
    "PLANT",
    "FIRE",
    "SALT",
    "OIL",
    "SPOUT",
    "WELL",
    "TORCH",
    "GUNPOWDER",
    "WAX",
    "ICE",
    "LAVA",
    "CRYO",
    "NITRO",
    "STEAM",
    "C4",
    "FUSE",
    "SALT_WATER",
    "FALLING_WAX",
)

BUILTIN_IDS: Dict[str, int] = {name: idx for idx, name in enumerate(BUILTIN_NAMES)}

BACKGROUND = BUILTIN_IDS["BACKGROUND"]
FIRE = BUILTIN_IDS["FIRE"]

CUSTOM_ID_OFFSET = 64

# Appearance of the built-ins that generated particles must not imitate.
BUILTIN_PALETTE: Dict[str, Tuple[int, int, int]] = {
    "FIRE": (255, 0, 10),
    "WATER": (0, 10, 255),
    "PLANT": (0, 220, 0),
    "SAND": (223, 193, 99),
    "WALL": (127, 127, 127),
    "OIL": (150, 60, 0),
    "LAVA": (245, 110, 40),
    "ICE": (200, 200, 255),
}


def is_known_element(name: str) -> bool:
    return name in BUILTIN_IDS
