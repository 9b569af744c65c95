# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `cookpro` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import uuid

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient  # noqa: E402

from cookpro import app as app_module
from cookpro.db import init_db
from cookpro.recipes import LOAD_ERROR, RecipeCatalog
from cookpro.schemas import Recipe


SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
# Use StaticPool so the same in-memory database is shared across connections
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create tables in the in-memory database
init_db(bind=engine)

CATALOG = RecipeCatalog(
    [
        Recipe(
            name="Tomato Soup",
            description="Warming soup",
            ingredients=["tomato", "salt"],
            steps=["Boil", "Blend"],
            youtube="https://www.youtube.com/watch?v=soup",
        ),
        Recipe(name="Dal", ingredients=["lentil"], benefits=["High in protein"]),
        Recipe(name="Jeera Rice", ingredients=["rice", "cumin"]),
    ]
    + [Recipe(name=f"Rice Bowl {i}", ingredients=["rice"]) for i in range(8)]
)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app_module.app.dependency_overrides[app_module.get_db] = override_get_db
app_module.app.dependency_overrides[app_module.get_catalog] = lambda: CATALOG
client = TestClient(app_module.app)


def signed_in_client(name="Asha"):
    c = TestClient(app_module.app)
    email = f"{uuid.uuid4().hex[:8]}@example.com"
    res = c.post("/auth/signup", json={"email": email, "password": "secret123", "name": name})
    assert res.status_code == 200
    return c


def test_root_serves_search_form():
    res = client.get("/")
    assert res.status_code == 200
    assert 'name="ingredients"' in res.text


def test_search_api_example_query():
    res = client.get("/api/recipes", params={"q": "tomato, onion"})
    assert res.status_code == 200
    data = res.json()
    assert data["tokens"] == ["tomato", "onion"]
    assert data["total"] == 1
    assert data["items"][0]["name"] == "Tomato Soup"
    assert data["items"][0]["id"] == "tomato_soup"
    assert data["error"] is None


def test_search_api_without_query_returns_everything():
    data = client.get("/api/recipes").json()
    assert data["tokens"] == []
    assert data["total"] == len(CATALOG)


def test_search_api_no_match_is_empty():
    data = client.get("/api/recipes", params={"q": "xyz123"}).json()
    assert data["total"] == 0
    assert data["items"] == []


def test_match_api_accepts_list_or_text():
    res = client.post("/api/match", json={"ingredients": ["lentils", "onion"]})
    assert res.status_code == 200
    assert [r["name"] for r in res.json()["items"]] == ["Dal"]

    res = client.post("/api/match", json={"ingredients": "protein"})
    assert [r["name"] for r in res.json()["items"]] == ["Dal"]


def test_results_page_caps_cards_at_six():
    res = client.get("/results", params={"ingredients": "rice"})
    assert res.status_code == 200
    assert res.text.count('class="recipe-card"') == 6
    assert "9 recipe(s) for: rice" in res.text


def test_results_page_empty_message():
    res = client.get("/results", params={"ingredients": "xyz123"})
    assert "No recipes found. Try different ingredients!" in res.text


def test_results_page_reports_load_failure():
    app_module.app.dependency_overrides[app_module.get_catalog] = lambda: RecipeCatalog([], error=LOAD_ERROR)
    try:
        res = client.get("/results", params={"ingredients": "tomato"})
        assert res.status_code == 200
        assert LOAD_ERROR in res.text
        data = client.get("/api/recipes", params={"q": "tomato"}).json()
        assert data["error"] == LOAD_ERROR
        assert data["items"] == []
    finally:
        app_module.app.dependency_overrides[app_module.get_catalog] = lambda: CATALOG


def test_recipe_detail_counts_views():
    before = client.get("/api/recipes/jeera_rice").json()["views"]
    res = client.get("/recipes/jeera_rice")
    assert res.status_code == 200
    assert "Jeera Rice" in res.text
    after = client.get("/api/recipes/jeera_rice").json()
    assert after["views"] == before + 2
    assert after["ingredients"] == ["rice", "cumin"]


def test_recipe_detail_shows_video_link():
    res = client.get("/recipes/tomato_soup")
    assert "Watch Video" in res.text
    assert "Blend" in res.text


def test_unknown_recipe_is_404():
    assert client.get("/recipes/nope").status_code == 404
    assert client.get("/api/recipes/nope").status_code == 404


def test_protected_routes_require_login():
    assert client.post("/api/recipes/dal/like").status_code == 401
    assert client.post("/api/recipes/dal/comments", json={"comment": "hi"}).status_code == 401
    assert client.get("/api/saved").status_code == 401
    assert client.post("/api/reviews", json={"text": "hi"}).status_code == 401
    assert client.get("/auth/me").json() == {"signed_in": False, "user": None}


def test_signup_login_logout():
    c = TestClient(app_module.app)
    email = "meera@example.com"
    res = c.post("/auth/signup", json={"email": email, "password": "secret123", "name": "Meera"})
    assert res.status_code == 200
    assert res.json()["email"] == email
    assert c.get("/auth/me").json()["user"]["name"] == "Meera"

    dup = c.post("/auth/signup", json={"email": email, "password": "secret123", "name": "Other"})
    assert dup.status_code == 400

    c.post("/auth/logout")
    assert c.get("/auth/me").json()["signed_in"] is False

    bad = c.post("/auth/login", json={"email": email, "password": "wrong-pass"})
    assert bad.status_code == 401
    ok = c.post("/auth/login", json={"email": "MEERA@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert c.get("/auth/me").json()["signed_in"] is True


def test_html_login_form_sets_session():
    c = TestClient(app_module.app)
    res = c.post(
        "/signup",
        data={"name": "Kiran", "email": "kiran@example.com", "password": "secret123"},
        follow_redirects=False,
    )
    assert res.status_code == 303
    assert "Kiran" in c.get("/").text

    res = TestClient(app_module.app).post(
        "/login", data={"email": "kiran@example.com", "password": "nope-nope"}
    )
    assert res.status_code == 401
    assert "Invalid email or password" in res.text


def test_like_toggle():
    c = signed_in_client()
    res = c.post("/api/recipes/dal/like")
    assert res.status_code == 200
    assert res.json() == {"recipe_id": "dal", "liked": True, "likes": 1}
    assert c.get("/api/recipes/dal/likes").json()["liked"] is True
    assert client.get("/api/recipes/dal/likes").json()["liked"] is False

    res = c.post("/api/recipes/dal/like")
    assert res.json() == {"recipe_id": "dal", "liked": False, "likes": 0}


def test_like_unknown_recipe_is_404():
    c = signed_in_client()
    assert c.post("/api/recipes/nope/like").status_code == 404


def test_comments_flow():
    author = signed_in_client("Author")
    other = signed_in_client("Other")

    res = author.post("/api/recipes/tomato_soup/comments", json={"comment": "  Delicious  "})
    assert res.status_code == 200
    comment = res.json()
    assert comment["comment"] == "Delicious"
    assert comment["user_name"] == "Author"

    blank = author.post("/api/recipes/tomato_soup/comments", json={"comment": "   "})
    assert blank.status_code == 422

    listed = client.get("/api/recipes/tomato_soup/comments").json()
    assert listed[0]["id"] == comment["id"]
    assert "Delicious" in client.get("/recipes/tomato_soup").text

    mine = author.get("/api/me/comments").json()
    assert [m["id"] for m in mine] == [comment["id"]]

    assert other.delete(f"/api/comments/{comment['id']}").status_code == 403
    assert author.delete(f"/api/comments/{comment['id']}").status_code == 200
    assert author.delete(f"/api/comments/{comment['id']}").status_code == 404


def test_saved_recipes_flow():
    c = signed_in_client()
    res = c.post("/api/saved", json={"recipe_id": "dal"})
    assert res.status_code == 200
    assert res.json()["recipe"]["name"] == "Dal"

    saved = c.get("/api/saved").json()
    assert [s["recipe_id"] for s in saved] == ["dal"]
    assert "Dal" in c.get("/saved").text

    assert c.delete("/api/saved/dal").status_code == 200
    assert c.delete("/api/saved/dal").status_code == 404
    assert c.get("/api/saved").json() == []


def test_html_like_and_save_forms():
    c = signed_in_client()
    res = c.post("/recipes/jeera_rice/like", follow_redirects=False)
    assert res.status_code == 303
    res = c.post("/recipes/jeera_rice/save", follow_redirects=False)
    assert res.status_code == 303
    page = c.get("/recipes/jeera_rice").text
    assert "Unlike" in page
    assert ">Saved</button>" in page

    res = c.post("/recipes/jeera_rice/comments", data={"comment": "Fluffy"}, follow_redirects=False)
    assert res.status_code == 303
    assert "Fluffy" in c.get("/recipes/jeera_rice").text


def test_reviews():
    c = signed_in_client("Reviewer")
    res = c.post("/api/reviews", json={"text": "Great recipes", "rating": 5})
    assert res.status_code == 200
    assert res.json()["user_name"] == "Reviewer"
    assert c.post("/api/reviews", json={"text": "x", "rating": 9}).status_code == 422

    reviews = client.get("/api/reviews").json()
    assert any(r["text"] == "Great recipes" for r in reviews)
    assert "Great recipes" in client.get("/reviews").text


def test_signup_rejects_password_over_bcrypt_limit():
    c = TestClient(app_module.app)
    res = c.post("/auth/signup", json={"email": "long@example.com", "password": "p" * 80, "name": "Long"})
    assert res.status_code == 422
    # 40 characters but 80 bytes once encoded
    res = c.post("/auth/signup", json={"email": "long@example.com", "password": "é" * 40, "name": "Long"})
    assert res.status_code == 422
    assert c.get("/auth/me").json()["signed_in"] is False

    res = c.post(
        "/signup",
        data={"name": "Long", "email": "long@example.com", "password": "p" * 80},
    )
    assert res.status_code == 400
    assert "at most 72 bytes" in res.text


def test_login_with_password_over_bcrypt_limit_is_bad_credentials():
    c = signed_in_client()
    email = c.get("/auth/me").json()["user"]["email"]
    res = TestClient(app_module.app).post("/auth/login", json={"email": email, "password": "p" * 80})
    assert res.status_code == 401

    res = TestClient(app_module.app).post("/login", data={"email": email, "password": "p" * 80})
    assert res.status_code == 401
    assert "Invalid email or password" in res.text


def test_blank_review_is_rejected():
    c = signed_in_client("Blank")
    assert c.post("/api/reviews", json={"text": "   "}).status_code == 422
    res = c.post("/api/reviews", json={"text": "  Tasty  "})
    assert res.status_code == 200
    assert res.json()["text"] == "Tasty"
    assert all(r["text"].strip() for r in client.get("/api/reviews").json())
