# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `cookpro` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest

from cookpro.normalize import (
    filter_recipes,
    is_ingredient_match,
    parse_ingredients,
    recipe_matches,
    search,
)
from cookpro.schemas import Recipe

SOUP = {"name": "Tomato Soup", "ingredients": ["tomato", "salt"]}
DAL = {"name": "Dal", "ingredients": ["lentil"]}


def test_parse_splits_on_commas_and_whitespace():
    assert parse_ingredients("Tomato, onion  garlic\nChilli") == [
        "tomato",
        "onion",
        "garlic",
        "chilli",
    ]


def test_parse_strips_punctuation_but_keeps_period_and_hyphen():
    assert parse_ingredients("green-chilli!! 1.5kg (rice)?") == [
        "green-chilli",
        "1.5kg",
        "rice",
    ]


def test_parse_collapses_duplicates_in_first_seen_order():
    assert parse_ingredients("salt, tomato, SALT, tomato") == ["salt", "tomato"]


@pytest.mark.parametrize("text", [None, "", "   ", ",,, ;;", "!!!"])
def test_parse_degrades_to_no_tokens(text):
    assert parse_ingredients(text) == []


@pytest.mark.parametrize(
    "text", ["Tomato, onion", "  a.b -c, d-e  ", "Paneer & Spinach; ghee"]
)
def test_parse_is_idempotent(text):
    tokens = parse_ingredients(text)
    assert parse_ingredients(" ".join(tokens)) == tokens
    assert parse_ingredients(", ".join(tokens)) == tokens


def test_example_query_uses_or_logic():
    tokens = parse_ingredients("tomato, onion")
    assert tokens == ["tomato", "onion"]
    assert filter_recipes([SOUP, DAL], tokens) == [SOUP]


def test_no_match_returns_empty_not_everything():
    assert search([SOUP, DAL], "xyz123") == []


@pytest.mark.parametrize("text", ["", "   ", "?!"])
def test_empty_query_returns_full_list(text):
    recipes = [SOUP, DAL]
    result = search(recipes, text)
    assert result == recipes
    assert result is not recipes


def test_exact_ingredient_always_included():
    recipes = [{"name": "Plain", "ingredients": ["okra"]}]
    assert filter_recipes(recipes, ["okra"]) == recipes


def test_bare_recipe_without_token_in_name_is_excluded():
    recipes = [{"name": "Mystery Dish"}]
    assert filter_recipes(recipes, ["okra"]) == []


def test_token_in_name_description_or_benefits_matches():
    by_name = {"name": "Onion Bhaji", "ingredients": ["gram flour"]}
    by_description = {"name": "Curry", "description": "Slow cooked with ONIONS"}
    by_benefit = {"name": "Soup", "benefits": ["Packed with onion goodness"]}
    recipes = [by_name, by_description, by_benefit, DAL]
    assert filter_recipes(recipes, ["onion"]) == [by_name, by_description, by_benefit]


def test_reverse_containment_handles_plurals():
    # "lentils" contains the ingredient "lentil"
    assert filter_recipes([SOUP, DAL], ["lentils"]) == [DAL]


def test_ingredient_matching_is_case_insensitive():
    assert is_ingredient_match("Basmati Rice", ["rice"])
    assert not is_ingredient_match("", ["rice"])
    assert not is_ingredient_match("  ", ["rice"])


def test_original_order_is_preserved():
    a = {"name": "A", "ingredients": ["rice"]}
    b = {"name": "B", "ingredients": ["rice", "dal"]}
    c = {"name": "C", "ingredients": ["dal"]}
    assert filter_recipes([c, a, b], ["rice", "dal"]) == [c, a, b]


def test_accepts_recipe_models():
    soup = Recipe(name="Tomato Soup", ingredients=["tomato"])
    assert recipe_matches(soup, ["tomato"])
    assert search([soup], "onion") == []
