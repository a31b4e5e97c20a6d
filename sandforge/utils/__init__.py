"""
Utility modules for sandforge.

Includes the LLM wrapper, configuration and the keyword category table.
"""

from .llm_wrapper import LLMWrapper, LLMResponse
from .config import ForgeConfig
from .categories import CategoryTable

__all__ = ["LLMWrapper", "LLMResponse", "ForgeConfig", "CategoryTable"]
