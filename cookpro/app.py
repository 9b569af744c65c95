import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List

from fastapi import Depends, FastAPI, Form, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import (
    AuthError,
    current_user,
    require_user,
    sign_in,
    sign_out,
    sign_up,
)
from .config import configure_logging, get_settings
from .db import get_db, init_db
from .normalize import filter_recipes, parse_ingredients
from .recipes import RecipeCatalog, recipe_id
from .render import NO_RESULTS, cards, format_time_ago

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]
SESSION_MAX_AGE = 60 * 60 * 24 * 30


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    init_db()
    app.state.catalog = RecipeCatalog.load(
        settings.DATA_SOURCE, timeout=settings.FETCH_TIMEOUT
    )
    yield


app = FastAPI(title="CookPro", version="0.1.0", lifespan=lifespan)
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["timeago"] = format_time_ago

static_dir = BASE_DIR / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_catalog(request: Request) -> RecipeCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        settings = get_settings()
        catalog = RecipeCatalog.load(
            settings.DATA_SOURCE, timeout=settings.FETCH_TIMEOUT
        )
        request.app.state.catalog = catalog
    return catalog


def get_recipe_or_404(rid: str, catalog: RecipeCatalog):
    recipe = catalog.get(rid)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


def recipe_out(recipe, likes: int = 0, views: int = 0) -> schemas.RecipeOut:
    return schemas.RecipeOut(
        id=recipe_id(recipe.name), likes=likes, views=views, **recipe.model_dump()
    )


def search_result(db: Session, catalog: RecipeCatalog, tokens, limit: int):
    matches = filter_recipes(catalog.recipes, tokens)
    shown = matches[:limit]
    stats = crud.get_stats_map(db, [recipe_id(r.name) for r in shown])
    items = [recipe_out(r, *stats.get(recipe_id(r.name), (0, 0))) for r in shown]
    return schemas.SearchResult(
        tokens=tokens, total=len(matches), items=items, error=catalog.error
    )


def _set_session(response: Response, token: str):
    response.set_cookie(
        get_settings().SESSION_COOKIE,
        token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )


# HTML pages


@app.get("/", response_class=HTMLResponse)
def read_root(request: Request, user=Depends(current_user)):
    return templates.TemplateResponse(
        request, "index.html", {"user": user, "have_text": ""}
    )


@app.get("/results", response_class=HTMLResponse)
def results_page(
    request: Request,
    ingredients: str = "",
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(current_user),
):
    tokens = parse_ingredients(ingredients)
    matches = filter_recipes(catalog.recipes, tokens)
    shown = matches[: get_settings().DISPLAY_LIMIT]
    likes = crud.get_likes_map(db, [recipe_id(r.name) for r in shown])
    logger.debug("%d recipes match %r", len(matches), ingredients)
    return templates.TemplateResponse(
        request,
        "results.html",
        {
            "user": user,
            "have_text": ingredients,
            "tokens": tokens,
            "total": len(matches),
            "cards": cards(shown, limit=len(shown), likes=likes),
            "error": catalog.error,
            "empty_message": NO_RESULTS,
        },
    )


@app.get("/recipes/{rid}", response_class=HTMLResponse)
def view_recipe(
    request: Request,
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(current_user),
):
    recipe = get_recipe_or_404(rid, catalog)
    crud.track_recipe_view(db, rid, user.id if user else None)
    return templates.TemplateResponse(
        request,
        "recipe.html",
        {
            "user": user,
            "rid": rid,
            "recipe": recipe,
            "likes": crud.get_recipe_likes(db, rid),
            "views": crud.get_recipe_views(db, rid),
            "liked": bool(user) and crud.is_recipe_liked(db, user.id, rid),
            "saved": bool(user) and crud.is_recipe_saved(db, user.id, rid),
            "comments": crud.get_recipe_comments(db, rid),
        },
    )


@app.post("/recipes/{rid}/like")
def like_form(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    get_recipe_or_404(rid, catalog)
    crud.toggle_recipe_like(db, user.id, rid)
    return RedirectResponse(url=f"/recipes/{rid}", status_code=303)


@app.post("/recipes/{rid}/save")
def save_form(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    recipe = get_recipe_or_404(rid, catalog)
    if crud.is_recipe_saved(db, user.id, rid):
        crud.remove_saved_recipe(db, user.id, rid)
    else:
        crud.save_recipe(db, user.id, rid, recipe.model_dump())
    return RedirectResponse(url=f"/recipes/{rid}", status_code=303)


@app.post("/recipes/{rid}/comments")
def comment_form(
    rid: str,
    comment: str = Form(...),
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    get_recipe_or_404(rid, catalog)
    text = comment.strip()
    if not text:
        raise HTTPException(status_code=422, detail="Comment cannot be empty")
    crud.add_recipe_comment(db, rid, user.id, user.name, text)
    return RedirectResponse(url=f"/recipes/{rid}", status_code=303)


@app.get("/saved", response_class=HTMLResponse)
def saved_page(
    request: Request, db: Session = Depends(get_db), user=Depends(current_user)
):
    saved = []
    if user is not None:
        for s in crud.get_saved_recipes(db, user.id):
            recipe = json.loads(s.payload or "{}")
            saved.append({"id": s.recipe_id, "saved_at": s.saved_at, **recipe})
    return templates.TemplateResponse(
        request, "saved.html", {"user": user, "saved": saved}
    )


@app.get("/reviews", response_class=HTMLResponse)
def reviews_page(
    request: Request, db: Session = Depends(get_db), user=Depends(current_user)
):
    return templates.TemplateResponse(
        request, "reviews.html", {"user": user, "reviews": crud.get_reviews(db)}
    )


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request, user=Depends(current_user)):
    return templates.TemplateResponse(
        request, "login.html", {"user": user, "message": None}
    )


@app.post("/login", response_class=HTMLResponse)
def login_form(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        token = sign_in(db, email, password)
    except AuthError as e:
        return templates.TemplateResponse(
            request, "login.html", {"user": None, "message": str(e)}, status_code=401
        )
    response = RedirectResponse(url="/", status_code=303)
    _set_session(response, token)
    return response


@app.post("/signup", response_class=HTMLResponse)
def signup_form(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        sign_up(db, email, password, name)
        token = sign_in(db, email, password)
    except AuthError as e:
        return templates.TemplateResponse(
            request, "login.html", {"user": None, "message": str(e)}, status_code=400
        )
    response = RedirectResponse(url="/", status_code=303)
    _set_session(response, token)
    return response


@app.post("/logout")
def logout_form(request: Request, db: Session = Depends(get_db)):
    cookie = get_settings().SESSION_COOKIE
    sign_out(db, request.cookies.get(cookie))
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(cookie)
    return response


# JSON API


@app.get("/api/recipes", response_model=schemas.SearchResult)
def api_search(
    q: str = "",
    limit: int = 50,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
):
    limit = max(1, min(limit, 500))
    return search_result(db, catalog, parse_ingredients(q), limit)


@app.post("/api/match", response_model=schemas.SearchResult)
def api_match(
    payload: schemas.MatchRequest,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
):
    text = payload.ingredients
    if isinstance(text, list):
        text = ", ".join(text)
    return search_result(db, catalog, parse_ingredients(text), len(catalog) or 1)


@app.get("/api/recipes/{rid}", response_model=schemas.RecipeOut)
def api_get_recipe(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(current_user),
):
    recipe = get_recipe_or_404(rid, catalog)
    crud.track_recipe_view(db, rid, user.id if user else None)
    return recipe_out(
        recipe, crud.get_recipe_likes(db, rid), crud.get_recipe_views(db, rid)
    )


@app.post("/api/recipes/{rid}/like", response_model=schemas.LikeOut)
def api_toggle_like(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    get_recipe_or_404(rid, catalog)
    liked = crud.toggle_recipe_like(db, user.id, rid)
    return schemas.LikeOut(recipe_id=rid, liked=liked, likes=crud.get_recipe_likes(db, rid))


@app.get("/api/recipes/{rid}/likes", response_model=schemas.LikeOut)
def api_get_likes(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(current_user),
):
    get_recipe_or_404(rid, catalog)
    liked = bool(user) and crud.is_recipe_liked(db, user.id, rid)
    return schemas.LikeOut(recipe_id=rid, liked=liked, likes=crud.get_recipe_likes(db, rid))


@app.get("/api/recipes/{rid}/comments", response_model=List[schemas.Comment])
def api_list_comments(
    rid: str,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
):
    get_recipe_or_404(rid, catalog)
    return crud.get_recipe_comments(db, rid)


@app.post("/api/recipes/{rid}/comments", response_model=schemas.Comment)
def api_add_comment(
    rid: str,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    get_recipe_or_404(rid, catalog)
    text = payload.comment.strip()
    if not text:
        raise HTTPException(status_code=422, detail="Comment cannot be empty")
    return crud.add_recipe_comment(db, rid, user.id, user.name, text)


@app.delete("/api/comments/{comment_id}")
def api_delete_comment(
    comment_id: int, db: Session = Depends(get_db), user=Depends(require_user)
):
    db_comment = crud.get_comment(db, comment_id)
    if db_comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    if not crud.delete_comment(db, comment_id, user.id):
        raise HTTPException(status_code=403, detail="You can only delete your own comments")
    return {"deleted": True}


@app.get("/api/me/comments", response_model=List[schemas.Comment])
def api_my_comments(db: Session = Depends(get_db), user=Depends(require_user)):
    return crud.get_user_comments(db, user.id)


@app.get("/api/saved", response_model=List[schemas.SavedRecipe])
def api_list_saved(db: Session = Depends(get_db), user=Depends(require_user)):
    return [
        schemas.SavedRecipe(
            recipe_id=s.recipe_id,
            recipe=schemas.Recipe.model_validate(json.loads(s.payload or "{}")),
            saved_at=s.saved_at,
        )
        for s in crud.get_saved_recipes(db, user.id)
    ]


@app.post("/api/saved", response_model=schemas.SavedRecipe)
def api_save(
    payload: schemas.SavedRecipeCreate,
    db: Session = Depends(get_db),
    catalog: RecipeCatalog = Depends(get_catalog),
    user=Depends(require_user),
):
    recipe = get_recipe_or_404(payload.recipe_id, catalog)
    s = crud.save_recipe(db, user.id, payload.recipe_id, recipe.model_dump())
    return schemas.SavedRecipe(recipe_id=s.recipe_id, recipe=recipe, saved_at=s.saved_at)


@app.delete("/api/saved/{rid}")
def api_remove_saved(
    rid: str, db: Session = Depends(get_db), user=Depends(require_user)
):
    if not crud.remove_saved_recipe(db, user.id, rid):
        raise HTTPException(status_code=404, detail="Recipe is not saved")
    return {"deleted": True}


@app.get("/api/reviews", response_model=List[schemas.Review])
def api_list_reviews(db: Session = Depends(get_db)):
    return crud.get_reviews(db)


@app.post("/api/reviews", response_model=schemas.Review)
def api_add_review(
    payload: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    return crud.save_review(db, user.id, user.name, payload.text, payload.rating)


@app.post("/auth/signup", response_model=schemas.User)
def api_signup(payload: schemas.SignUp, response: Response, db: Session = Depends(get_db)):
    try:
        user = sign_up(db, payload.email, payload.password, payload.name)
        token = sign_in(db, payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _set_session(response, token)
    return user


@app.post("/auth/login", response_model=schemas.User)
def api_login(payload: schemas.SignIn, response: Response, db: Session = Depends(get_db)):
    try:
        token = sign_in(db, payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    _set_session(response, token)
    return crud.get_user_by_email(db, payload.email.strip().lower())


@app.post("/auth/logout")
def api_logout(request: Request, response: Response, db: Session = Depends(get_db)):
    cookie = get_settings().SESSION_COOKIE
    sign_out(db, request.cookies.get(cookie))
    response.delete_cookie(cookie)
    return {"signed_in": False}


@app.get("/auth/me")
def api_me(user=Depends(current_user)):
    if user is None:
        return {"signed_in": False, "user": None}
    return {"signed_in": True, "user": schemas.User.model_validate(user)}
