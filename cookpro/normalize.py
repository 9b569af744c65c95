# Substring matching only: no stemming, no synonyms, no fuzzy scores
import re
from typing import Iterable, List, Sequence

_DISALLOWED = re.compile(r"[^a-z0-9\s,.\-]")
_SEPARATORS = re.compile(r"[,\s]+")


def parse_ingredients(text) -> List[str]:
    """Turn free-text user input into lowercase search tokens.

    Characters outside letters, digits, whitespace, comma, period and hyphen
    are dropped; the rest is split on commas and whitespace. Tokens keep the
    order of their first appearance and duplicates collapse.
    """
    if not text:
        return []
    cleaned = _DISALLOWED.sub("", str(text).lower())
    pieces = (p.strip() for p in _SEPARATORS.split(cleaned))
    return list(dict.fromkeys(p for p in pieces if p))


def _field(recipe, key, default=None):
    if isinstance(recipe, dict):
        return recipe.get(key, default)
    return getattr(recipe, key, default)


def searchable_text(recipe) -> str:
    parts = [_field(recipe, "name") or "", _field(recipe, "description") or ""]
    parts.extend(b for b in (_field(recipe, "benefits") or []) if b)
    return " ".join(parts).lower()


def is_ingredient_match(recipe_ing: str, tokens: Iterable[str]) -> bool:
    """Return True if any token and the ingredient contain one another."""
    ing = (recipe_ing or "").strip().lower()
    if not ing:
        return False
    return any(t in ing or ing in t for t in tokens)


def recipe_matches(recipe, tokens: Sequence[str]) -> bool:
    ingredients = [i for i in (_field(recipe, "ingredients") or []) if i]
    if any(is_ingredient_match(i, tokens) for i in ingredients):
        return True
    text = searchable_text(recipe)
    return any(t in text for t in tokens)


def filter_recipes(recipes: Sequence, tokens: Sequence[str]) -> list:
    # OR across tokens; an empty token list means no filter
    if not tokens:
        return list(recipes)
    return [r for r in recipes if recipe_matches(r, tokens)]


def search(recipes: Sequence, text) -> list:
    return filter_recipes(recipes, parse_ingredients(text))
