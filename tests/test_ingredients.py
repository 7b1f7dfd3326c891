import pytest

from conftest import ingredient, recipe_input
from models import Ingredient, Measurement
from models.Ingredient import APPROVED, PENDING
from services.ingredients import (
    get_or_create_ingredient,
    normalize_measurement,
    resolve_ingredients,
)
from services.recipes import create_recipe


@pytest.mark.parametrize(
    "given,expected",
    (
        ("Tablespoons", "tbsp"),
        (" cups ", "cup"),
        ("lbs", "lb"),
        ("handful", "handful"),
        ("", None),
        (None, None),
    ),
)
def test_normalize_measurement(given, expected):
    assert normalize_measurement(given) == expected


def test_user_created_ingredient_is_pending(session, make_user):
    user = make_user()

    created = get_or_create_ingredient(session, '  Smoked Paprika ', user.id)
    again = get_or_create_ingredient(session, 'smoked paprika', None)

    assert created.id == again.id
    assert created.name == 'smoked paprika'
    assert created.status == PENDING


def test_seed_path_ingredient_is_approved(session):
    assert get_or_create_ingredient(session, 'Flour').status == APPROVED


def test_lines_keep_input_order(session, make_user):
    user = make_user()
    items = [ingredient('Eggs', 2), ingredient('Milk', 250, 'milliliters'), ingredient('Flour', 200, 'grams')]

    lines = resolve_ingredients(session, items, user.id)

    assert [line.order for line in lines] == [0, 1, 2]
    names = [session.get(Ingredient, line.ingredient_id).name for line in lines]
    assert names == ['eggs', 'milk', 'flour']
    assert lines[0].measurement_id is None
    assert session.get(Measurement, lines[1].measurement_id).measurement_name == 'ml'


def test_recipe_ingredients_are_written_in_order(session, make_user):
    user = make_user()
    data = recipe_input(ingredients=[ingredient('Flour', 200, 'g'), ingredient('Sugar', 1.5, 'Cups')])

    recipe = create_recipe(session, user.id, data)

    assert [ri.to_dict() for ri in recipe.ingredients] == [
        {"ingredient_id": recipe.ingredients[0].ingredient_id, "name": "flour", "quantity": 200, "unit": "g", "order": 0},
        {"ingredient_id": recipe.ingredients[1].ingredient_id, "name": "sugar", "quantity": 1.5, "unit": "cup", "order": 1},
    ]
