"""CookPro: ingredient-driven recipe browsing."""

__version__ = "0.1.0"
