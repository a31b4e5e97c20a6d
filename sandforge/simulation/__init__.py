"""
Reference falling sand grid and built-in elements.
"""

from .grid import SandGrid, CellBuffer

__all__ = ["SandGrid", "CellBuffer"]
