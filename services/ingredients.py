import logging
from dataclasses import dataclass
from typing import Optional

from models import Ingredient, Measurement, RecipeIngredient
from models.Ingredient import APPROVED, PENDING
from services.validation import normalize_name

logger = logging.getLogger(__name__)


# --- HELPER: MEASUREMENT NORMALIZATION ---
UNIT_MAPPINGS = {
    "tablespoon": "tbsp", "tablespoons": "tbsp", "tbsp": "tbsp",
    "teaspoon": "tsp", "teaspoons": "tsp", "tsp": "tsp",
    "cup": "cup", "cups": "cup",
    "ounce": "oz", "ounces": "oz", "oz": "oz",
    "pound": "lb", "pounds": "lb", "lb": "lb", "lbs": "lb",
    "gram": "g", "grams": "g", "g": "g",
    "kilogram": "kg", "kilograms": "kg", "kg": "kg",
    "liter": "l", "liters": "l", "l": "l",
    "milliliter": "ml", "milliliters": "ml", "ml": "ml",
    "centiliter": "cl", "centiliters": "cl", "cl": "cl",
    "pinch": "pinch", "pinches": "pinch",
    "clove": "clove", "cloves": "clove",
    "slice": "slice", "slices": "slice",
    "piece": "piece", "pieces": "piece",
    "can": "can", "cans": "can"
}


def normalize_measurement(unit_name):
    if not unit_name:
        return None
    clean_name = unit_name.lower().strip()
    if not clean_name:
        return None
    return UNIT_MAPPINGS.get(clean_name, clean_name)


@dataclass
class IngredientLine:
    """An ingredient line resolved to ids, ready to be written on any recipe."""

    ingredient_id: int
    quantity: Optional[float]
    measurement_id: Optional[int]
    order: int


def get_or_create_measurement(session, unit_name):
    measurement_name = normalize_measurement(unit_name)
    if not measurement_name:
        return None
    measurement = session.query(Measurement).filter_by(measurement_name=measurement_name).first()
    if not measurement:
        measurement = Measurement(measurement_name=measurement_name)
        session.add(measurement)
        session.flush()
    return measurement


def get_or_create_ingredient(session, name, user_id=None):
    """Look up an ingredient by normalized name, creating it if unknown.

    User-created ingredients wait for moderation (PENDING); ingredients
    created without an acting user (seed/admin path) are APPROVED.
    """
    ingredient_name = normalize_name(name)
    ingredient = session.query(Ingredient).filter_by(name=ingredient_name).first()
    if not ingredient:
        ingredient = Ingredient(
            name=ingredient_name,
            status=PENDING if user_id is not None else APPROVED,
            created_by_id=user_id,
        )
        session.add(ingredient)
        session.flush()
        logger.info("Created %s ingredient %r", ingredient.status.lower(), ingredient_name)
    return ingredient


def resolve_ingredients(session, items, user_id=None):
    """Resolve `IngredientInput` items to `IngredientLine`s.

    The order index is the item's position in `items`, so callers express a
    reorder by passing the full list again.
    """
    lines = []
    for order, item in enumerate(items):
        ingredient = get_or_create_ingredient(session, item.name, user_id)
        measurement = get_or_create_measurement(session, item.unit)
        lines.append(IngredientLine(
            ingredient_id=ingredient.id,
            quantity=item.quantity,
            measurement_id=measurement.id if measurement else None,
            order=order,
        ))
    return lines


def write_ingredient_lines(session, recipe, lines):
    """Replace every ingredient line of `recipe` with `lines` (delete, then recreate)."""
    session.query(RecipeIngredient).filter_by(recipe_id=recipe.id).delete()
    for line in lines:
        session.add(RecipeIngredient(
            recipe_id=recipe.id,
            ingredient_id=line.ingredient_id,
            measurement_id=line.measurement_id,
            quantity=line.quantity,
            order=line.order,
        ))
    session.flush()
    session.expire(recipe, ['ingredients'])
