from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    password_hash = Column(String(100), nullable=True)
    photo_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class UserSession(Base):
    __tablename__ = "sessions"
    token = Column(String(64), primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class RecipeStats(Base):
    __tablename__ = "recipe_stats"
    recipe_id = Column(String(200), primary_key=True)
    likes = Column(Integer, nullable=False, default=0, server_default="0")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    last_updated = Column(DateTime, nullable=True)
    last_viewed = Column(DateTime, nullable=True)


class RecipeLike(Base):
    __tablename__ = "recipe_likes"
    __table_args__ = (UniqueConstraint("user_id", "recipe_id"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    recipe_id = Column(String(200), index=True, nullable=False)


class SavedRecipe(Base):
    __tablename__ = "saved_recipes"
    __table_args__ = (UniqueConstraint("user_id", "recipe_id"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    recipe_id = Column(String(200), nullable=False)
    payload = Column(Text, nullable=True)  # JSON-encoded recipe snapshot
    saved_at = Column(DateTime, server_default=func.now())


class RecipeView(Base):
    __tablename__ = "recipe_views"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(String(200), index=True, nullable=False)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    viewed_at = Column(DateTime, server_default=func.now())


class Comment(Base):
    __tablename__ = "comments"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(String(200), index=True, nullable=False)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    user_name = Column(String(200), nullable=True)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    user_name = Column(String(200), nullable=True)
    rating = Column(Integer, nullable=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
