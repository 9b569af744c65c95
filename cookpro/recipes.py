import json
import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError

from .normalize import search
from .schemas import Recipe

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load recipes. Please refresh the page."

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class CatalogLoadError(Exception):
    """The recipe dataset could not be fetched or parsed."""


def recipe_id(name: str) -> str:
    """Key used to correlate a recipe with its likes, views and comments."""
    return _NON_ALNUM.sub("_", (name or "").lower())


def load_recipes(path):
    """Load recipes from a JSON file and return a list of dicts.

    Args:
        path (str or Path): Path to the JSON file.

    Returns:
        list: list of recipe dictionaries, empty if the file is missing.
    """
    p = Path(path)
    if not p.exists():
        return []
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _read_source(source: str, timeout: float):
    if source.startswith(("http://", "https://")):
        try:
            res = httpx.get(source, timeout=timeout, follow_redirects=True)
            res.raise_for_status()
            return res.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogLoadError(f"{source}: {e}") from e
    p = Path(source)
    if not p.exists():
        raise CatalogLoadError(f"{source}: file not found")
    try:
        return load_recipes(p)
    except (OSError, ValueError) as e:
        raise CatalogLoadError(f"{source}: {e}") from e


def parse_recipes(data) -> List[Recipe]:
    if not isinstance(data, list):
        raise CatalogLoadError("recipe document is not a JSON array")
    recipes = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or not item.get("name"):
            continue
        try:
            recipes.append(Recipe.model_validate(item))
        except ValidationError as e:
            logger.warning("skipping recipe #%d (%s): %s", i, item.get("name"), e)
    return recipes


class RecipeCatalog:
    """Recipe list loaded once and shared read-only for the process."""

    def __init__(self, recipes=None, error: Optional[str] = None):
        self._recipes: List[Recipe] = list(recipes or [])
        self._by_id: Dict[str, Recipe] = {}
        for r in self._recipes:
            self._by_id.setdefault(recipe_id(r.name), r)
        self.error = error

    @classmethod
    def load(cls, source, timeout: float = 5.0) -> "RecipeCatalog":
        try:
            recipes = parse_recipes(_read_source(str(source), timeout))
        except CatalogLoadError as e:
            logger.error("failed to load recipes: %s", e)
            return cls([], error=LOAD_ERROR)
        catalog = cls(recipes)
        logger.info("loaded %d recipes from %s", len(catalog), source)
        dupes = catalog.collisions()
        if dupes:
            logger.warning("recipe id collisions: %s", sorted(dupes))
        return catalog

    @property
    def recipes(self) -> List[Recipe]:
        return self._recipes

    def __len__(self):
        return len(self._recipes)

    def __iter__(self):
        return iter(self._recipes)

    def get(self, rid: str) -> Optional[Recipe]:
        return self._by_id.get(rid)

    def search(self, text) -> List[Recipe]:
        return search(self._recipes, text)

    def collisions(self) -> Dict[str, List[str]]:
        """Map each shared recipe id to the names that produce it."""
        seen = defaultdict(list)
        for r in self._recipes:
            seen[recipe_id(r.name)].append(r.name)
        return {k: v for k, v in seen.items() if len(v) > 1}
