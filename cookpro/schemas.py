from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


class Recipe(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., json_schema_extra={"example": "Tomato Soup"})
    description: Optional[str] = None
    ingredients: List[str] = Field(
        default_factory=list,
        json_schema_extra={"example": ["tomato", "salt", "cumin"]},
    )
    benefits: List[str] = Field(default_factory=list)
    steps: List[str] = Field(
        default_factory=list,
        json_schema_extra={
            "example": [
                "Boil the tomatoes",
                "Blend with salt and cumin",
                "Simmer for ten minutes",
            ]
        },
    )
    time: Optional[str] = None
    image: Optional[str] = None
    youtube: Optional[str] = None


class RecipeOut(Recipe):
    id: str
    likes: int = 0
    views: int = 0


class SearchResult(BaseModel):
    tokens: List[str]
    total: int
    items: List[RecipeOut]
    error: Optional[str] = None


class MatchRequest(BaseModel):
    ingredients: Union[str, List[str]] = Field(
        ..., json_schema_extra={"example": "tomato, onion"}
    )


class LikeOut(BaseModel):
    recipe_id: str
    liked: bool
    likes: int


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_id: str
    user_id: str
    user_name: Optional[str] = None
    comment: str
    created_at: Optional[datetime] = None


class ReviewCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Review cannot be empty")
        return v


class Review(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    user_name: Optional[str] = None
    text: str
    rating: Optional[int] = None
    created_at: Optional[datetime] = None


class SavedRecipeCreate(BaseModel):
    recipe_id: str


class SavedRecipe(BaseModel):
    recipe_id: str
    recipe: Recipe
    saved_at: Optional[datetime] = None


class SignUp(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class SignIn(BaseModel):
    email: str
    password: str


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    email: str
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
