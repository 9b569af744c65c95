from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .recipes import recipe_id

DISPLAY_LIMIT = 6
DEFAULT_DESCRIPTION = "Delicious Indian recipe"
DEFAULT_TIME = "30 min"
NO_RESULTS = "No recipes found. Try different ingredients!"


def recipe_card(recipe, likes: int = 0) -> dict:
    return {
        "id": recipe_id(recipe.name),
        "name": recipe.name,
        "description": recipe.description or DEFAULT_DESCRIPTION,
        "time": recipe.time or DEFAULT_TIME,
        "image": recipe.image,
        "likes": likes,
    }


def cards(
    recipes: Iterable, limit: int = DISPLAY_LIMIT, likes: Optional[Dict[str, int]] = None
) -> List[dict]:
    likes = likes or {}
    out = []
    for r in recipes:
        if len(out) >= limit:
            break
        out.append(recipe_card(r, likes.get(recipe_id(r.name), 0)))
    return out


def _aware(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes in UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def format_time_ago(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    if dt is None:
        return "Just now"
    dt = _aware(dt)
    now = _aware(now) if now else datetime.now(timezone.utc)
    minutes = int((now - dt).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return dt.strftime("%b %d, %Y")
