import logging
from datetime import datetime

from models import RecipeStep
from services.ingredients import write_ingredient_lines
from services.recipe_graph import find_linked_recipes

logger = logging.getLogger(__name__)


def write_steps(session, recipe, instructions):
    """Replace every step of `recipe` (delete, then recreate in the given order)."""
    session.query(RecipeStep).filter_by(recipe_id=recipe.id).delete()
    for order, instruction in enumerate(instructions):
        session.add(RecipeStep(recipe_id=recipe.id, order=order, instruction=instruction.strip()))
    session.flush()
    session.expire(recipe, ['steps'])


def apply_fields(session, recipe, scalars, steps=None, ingredient_lines=None):
    """Write supplied fields onto one recipe.

    `scalars` holds only the supplied scalar fields. `steps` and
    `ingredient_lines` are ``None`` when not supplied, and fully replace the
    recipe's lines otherwise.
    """
    for name, value in scalars.items():
        setattr(recipe, name, value)
    if steps is not None:
        write_steps(session, recipe, steps)
    if ingredient_lines is not None:
        write_ingredient_lines(session, recipe, ingredient_lines)
    if scalars or steps is not None or ingredient_lines is not None:
        # Line replacement alone does not touch the recipe row
        recipe.updated_at = datetime.utcnow()
    session.flush()


def propagate(session, recipe, scalars, steps=None, ingredient_lines=None):
    """Replay an edit of `recipe` onto every recipe linked to it.

    Only the fields the edit supplied are written; tags are never touched.
    Returns the recipes that were updated.
    """
    if not scalars and steps is None and ingredient_lines is None:
        return []

    linked = find_linked_recipes(session, recipe)
    for linked_recipe in linked:
        apply_fields(session, linked_recipe, scalars, steps, ingredient_lines)

    if linked:
        logger.info("Propagated edit of recipe %s to %s", recipe.id, [r.id for r in linked])
    return linked
