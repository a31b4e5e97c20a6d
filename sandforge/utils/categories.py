"""
Keyword category table.

Name-driven heuristics (template choice, runtime fallback, color repair,
prompt hints) all read their keyword sets from one YAML document so a new
category can be added without touching the code that dispatches on it.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from loguru import logger


DEFAULT_CATEGORIES_PATH = Path(__file__).resolve().parent.parent / "config" / "categories.yaml"


class CategoryTable:
    """
    Keyword groups loaded from YAML.

    A group is either a flat keyword list (``explosive``) or an ordered
    mapping of category name to keyword list (``templates``).
    """

    def __init__(self, source: Union[str, Path, Dict[str, Any], None] = None):
        """
        Load the table.

        Args:
            source: Path to a YAML file, an already-parsed mapping, or None
                for the bundled defaults
        """
        if isinstance(source, dict):
            data = source
        else:
            path = Path(source) if source is not None else DEFAULT_CATEGORIES_PATH
            if not path.exists():
                raise FileNotFoundError(f"Category file not found: {path}")
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

        self._groups: Dict[str, Any] = {}
        for group, value in data.items():
            if isinstance(value, dict):
                self._groups[group] = {
                    str(category): [str(k).upper() for k in (keywords or [])]
                    for category, keywords in value.items()
                }
            else:
                self._groups[group] = [str(k).upper() for k in (value or [])]

        logger.debug(f"Loaded category table with groups: {sorted(self._groups)}")

    def keywords(self, group: str, category: Optional[str] = None) -> List[str]:
        """Return the keyword list for a flat group or one category of a mapped group."""
        value = self._groups.get(group)
        if value is None:
            return []
        if isinstance(value, dict):
            if category is None:
                raise ValueError(f"Group '{group}' needs a category")
            return list(value.get(category, []))
        return list(value)

    def matches(self, group: str, name: str, category: Optional[str] = None) -> bool:
        """True when any keyword of the group (or category) occurs in the name."""
        upper = name.upper()
        return any(keyword in upper for keyword in self.keywords(group, category))

    def classify(self, group: str, name: str) -> Optional[str]:
        """Return the first category of a mapped group whose keywords occur in the name."""
        value = self._groups.get(group)
        if not isinstance(value, dict):
            return None
        upper = name.upper()
        for category, keywords in value.items():
            if any(keyword in upper for keyword in keywords):
                return category
        return None

    def groups(self) -> List[str]:
        return list(self._groups)
