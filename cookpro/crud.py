import json
import uuid
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from . import models


def get_user(db: Session, user_id: str):
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def save_user(db: Session, user_id: Optional[str] = None, **fields):
    """Create the user or merge ``fields`` into the existing record."""
    db_user = get_user(db, user_id) if user_id else None
    if db_user is None:
        db_user = models.User(id=user_id or uuid.uuid4().hex)
    for key, value in fields.items():
        setattr(db_user, key, value)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def save_recipe(db: Session, user_id: str, recipe_id: str, payload: dict):
    db_saved = (
        db.query(models.SavedRecipe)
        .filter(
            models.SavedRecipe.user_id == user_id,
            models.SavedRecipe.recipe_id == recipe_id,
        )
        .first()
    )
    if db_saved is None:
        db_saved = models.SavedRecipe(user_id=user_id, recipe_id=recipe_id)
    db_saved.payload = json.dumps(payload)
    db_saved.saved_at = func.now()
    db.add(db_saved)
    db.commit()
    db.refresh(db_saved)
    return db_saved


def get_saved_recipes(db: Session, user_id: str):
    return (
        db.query(models.SavedRecipe)
        .filter(models.SavedRecipe.user_id == user_id)
        .order_by(models.SavedRecipe.saved_at.desc(), models.SavedRecipe.id.desc())
        .all()
    )


def is_recipe_saved(db: Session, user_id: str, recipe_id: str) -> bool:
    q = db.query(models.SavedRecipe).filter(
        models.SavedRecipe.user_id == user_id,
        models.SavedRecipe.recipe_id == recipe_id,
    )
    return db.query(q.exists()).scalar()


def remove_saved_recipe(db: Session, user_id: str, recipe_id: str) -> bool:
    deleted = (
        db.query(models.SavedRecipe)
        .filter(
            models.SavedRecipe.user_id == user_id,
            models.SavedRecipe.recipe_id == recipe_id,
        )
        .delete()
    )
    db.commit()
    return deleted > 0


def _ensure_stats(db: Session, recipe_id: str):
    if db.get(models.RecipeStats, recipe_id) is None:
        db.add(models.RecipeStats(recipe_id=recipe_id, likes=0, views=0))
        db.flush()


def _bump_likes(db: Session, recipe_id: str, delta: int):
    likes = models.RecipeStats.likes
    if delta > 0:
        value = likes + delta
    else:
        value = case((likes + delta > 0, likes + delta), else_=0)
    db.execute(
        update(models.RecipeStats)
        .where(models.RecipeStats.recipe_id == recipe_id)
        .values(likes=value, last_updated=func.now())
        .execution_options(synchronize_session=False)
    )


def is_recipe_liked(db: Session, user_id: str, recipe_id: str) -> bool:
    q = db.query(models.RecipeLike).filter(
        models.RecipeLike.user_id == user_id,
        models.RecipeLike.recipe_id == recipe_id,
    )
    return db.query(q.exists()).scalar()


def toggle_recipe_like(db: Session, user_id: str, recipe_id: str) -> bool:
    """Flip the user's like on a recipe and return the new state."""
    _ensure_stats(db, recipe_id)
    db_like = (
        db.query(models.RecipeLike)
        .filter(
            models.RecipeLike.user_id == user_id,
            models.RecipeLike.recipe_id == recipe_id,
        )
        .first()
    )
    if db_like is not None:
        db.delete(db_like)
        _bump_likes(db, recipe_id, -1)
        liked = False
    else:
        db.add(models.RecipeLike(user_id=user_id, recipe_id=recipe_id))
        _bump_likes(db, recipe_id, 1)
        liked = True
    db.commit()
    return liked


def get_recipe_likes(db: Session, recipe_id: str) -> int:
    stats = db.get(models.RecipeStats, recipe_id)
    return stats.likes if stats else 0


def get_stats_map(db: Session, recipe_ids: Iterable[str]) -> Dict[str, Tuple[int, int]]:
    """Return ``{recipe_id: (likes, views)}`` for recipes that have stats."""
    ids = list(recipe_ids)
    if not ids:
        return {}
    rows = (
        db.query(
            models.RecipeStats.recipe_id,
            models.RecipeStats.likes,
            models.RecipeStats.views,
        )
        .filter(models.RecipeStats.recipe_id.in_(ids))
        .all()
    )
    return {rid: (likes, views) for rid, likes, views in rows}


def get_likes_map(db: Session, recipe_ids: Iterable[str]) -> Dict[str, int]:
    return {rid: s[0] for rid, s in get_stats_map(db, recipe_ids).items()}


def track_recipe_view(db: Session, recipe_id: str, user_id: Optional[str] = None):
    _ensure_stats(db, recipe_id)
    db.execute(
        update(models.RecipeStats)
        .where(models.RecipeStats.recipe_id == recipe_id)
        .values(views=models.RecipeStats.views + 1, last_viewed=func.now())
        .execution_options(synchronize_session=False)
    )
    if user_id:
        db.add(models.RecipeView(recipe_id=recipe_id, user_id=user_id))
    db.commit()


def get_recipe_views(db: Session, recipe_id: str) -> int:
    stats = db.get(models.RecipeStats, recipe_id)
    return stats.views if stats else 0


def add_recipe_comment(
    db: Session, recipe_id: str, user_id: str, user_name: Optional[str], comment: str
):
    db_comment = models.Comment(
        recipe_id=recipe_id, user_id=user_id, user_name=user_name, comment=comment
    )
    db.add(db_comment)
    db.commit()
    db.refresh(db_comment)
    return db_comment


def get_recipe_comments(db: Session, recipe_id: str):
    return (
        db.query(models.Comment)
        .filter(models.Comment.recipe_id == recipe_id)
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
        .all()
    )


def get_user_comments(db: Session, user_id: str):
    return (
        db.query(models.Comment)
        .filter(models.Comment.user_id == user_id)
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
        .all()
    )


def get_comment(db: Session, comment_id: int):
    return db.get(models.Comment, comment_id)


def delete_comment(db: Session, comment_id: int, user_id: str) -> bool:
    # only the author may delete
    db_comment = db.get(models.Comment, comment_id)
    if not db_comment or db_comment.user_id != user_id:
        return False
    db.delete(db_comment)
    db.commit()
    return True


def save_review(
    db: Session, user_id: str, user_name: Optional[str], text: str, rating: Optional[int] = None
):
    db_review = models.Review(
        user_id=user_id, user_name=user_name, text=text, rating=rating
    )
    db.add(db_review)
    db.commit()
    db.refresh(db_review)
    return db_review


def get_reviews(db: Session):
    return (
        db.query(models.Review)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )
