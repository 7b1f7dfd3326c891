import logging
from datetime import datetime

from models import Recipe
from services import events
from services.errors import Conflict, InvalidInput, LimitExceeded, PermissionDenied
from services.ingredients import resolve_ingredients, write_ingredient_lines
from services.recipe_graph import require_community, require_membership, require_recipe
from services.sync import apply_fields, propagate, write_steps
from services.tags import link_tags, replace_recipe_tags, resolve_tags
from services.transaction import atomic
from services.validation import (
    MAX_TAGS_PER_RECIPE,
    validate_recipe_input,
    validate_recipe_update,
    validate_tag_name,
)

logger = logging.getLogger(__name__)


def ensure_can_view(session, recipe, user_id):
    if recipe.community_id is None:
        if recipe.creator_id != user_id:
            raise PermissionDenied('RECIPE_002', 'Cannot access this recipe')
    else:
        require_membership(session, user_id, recipe.community_id)


def ensure_owner(recipe, user_id, message='Only the recipe creator can modify this recipe'):
    if recipe.creator_id is None or recipe.creator_id != user_id:
        raise PermissionDenied('RECIPE_002', message)


def _new_recipe(session, user_id, data, community_id=None, origin_recipe_id=None):
    recipe = Recipe(
        title=data.title.strip(),
        servings=data.servings,
        prep_time=data.prep_time,
        cook_time=data.cook_time,
        rest_time=data.rest_time,
        image_url=data.image_url.strip() if data.image_url else None,
        creator_id=user_id,
        community_id=community_id,
        origin_recipe_id=origin_recipe_id,
    )
    session.add(recipe)
    session.flush()
    write_steps(session, recipe, data.steps)
    return recipe


def create_recipe(session, user_id, data):
    """Create a personal recipe."""
    validate_recipe_input(data)

    with atomic(session):
        recipe = _new_recipe(session, user_id, data)
        if data.tags:
            link_tags(session, recipe, resolve_tags(session, data.tags, user_id, None).tag_ids)
        if data.ingredients:
            write_ingredient_lines(session, recipe, resolve_ingredients(session, data.ingredients, user_id))

    logger.info("Recipe %s created by user %s", recipe.id, user_id)
    return recipe


def create_community_recipe(session, user_id, community_id, data):
    """Create a recipe in a community together with its personal origin.

    Returns ``(personal, community_copy, pending_tag_ids)``.
    """
    validate_recipe_input(data)
    require_community(session, community_id)
    require_membership(session, user_id, community_id)

    with atomic(session) as uow:
        personal = _new_recipe(session, user_id, data)
        copy = _new_recipe(session, user_id, data, community_id=community_id, origin_recipe_id=personal.id)

        pending_tag_ids = []
        if data.tags:
            # Community copy first, so unknown names become COMMUNITY/PENDING there
            resolved = resolve_tags(session, data.tags, user_id, community_id)
            link_tags(session, copy, resolved.tag_ids)
            pending_tag_ids = resolved.pending_tag_ids
            link_tags(session, personal, resolve_tags(session, data.tags, user_id, None).tag_ids)

        if data.ingredients:
            lines = resolve_ingredients(session, data.ingredients, user_id)
            write_ingredient_lines(session, personal, lines)
            write_ingredient_lines(session, copy, lines)

        uow.stage(events.RECIPE_CREATED, user_id, community_id, copy.id)

    logger.info("Community recipe %s (personal %s) created in community %s", copy.id, personal.id, community_id)
    return personal, copy, pending_tag_ids


def update_recipe(session, recipe_id, user_id, changes):
    """Apply a partial update to a recipe and mirror it onto its linked recipes.

    Tags, when supplied, are replaced on this recipe only.
    """
    recipe = require_recipe(session, recipe_id)
    ensure_owner(recipe, user_id)
    if changes.is_empty:
        raise InvalidInput('RECIPE_008', 'No fields to update')
    validate_recipe_update(changes)

    with atomic(session) as uow:
        scalars = changes.scalar_changes()
        steps = changes.steps if changes.is_set('steps') else None
        lines = resolve_ingredients(session, changes.ingredients, user_id) if changes.is_set('ingredients') else None

        apply_fields(session, recipe, scalars, steps, lines)
        if changes.is_set('tags'):
            replace_recipe_tags(session, recipe, changes.tags, user_id)

        linked = propagate(session, recipe, scalars, steps, lines)

        if recipe.community_id is not None:
            uow.stage(events.RECIPE_UPDATED, user_id, recipe.community_id, recipe.id)
        for linked_recipe in linked:
            if linked_recipe.community_id is not None:
                uow.stage(events.RECIPE_UPDATED, user_id, linked_recipe.community_id, linked_recipe.id,
                          propagatedFromRecipeId=recipe.id)

    logger.info("Recipe %s updated by user %s", recipe.id, user_id)
    return recipe


def add_recipe_tag(session, recipe_id, user_id, tag_name):
    recipe = require_recipe(session, recipe_id)
    ensure_owner(recipe, user_id)
    name = validate_tag_name(tag_name)

    if any(tag.name == name for tag in recipe.tags):
        raise Conflict('TAG_002', 'Recipe already has this tag')
    if len(recipe.tags) >= MAX_TAGS_PER_RECIPE:
        raise LimitExceeded('TAG_003', f'Maximum {MAX_TAGS_PER_RECIPE} tags per recipe')

    with atomic(session):
        resolved = resolve_tags(session, [name], user_id, recipe.community_id)
        link_tags(session, recipe, resolved.tag_ids)

    return recipe


def delete_recipe(session, recipe_id, user_id):
    """Soft-delete a recipe. Linked copies are left in place."""
    recipe = require_recipe(session, recipe_id)
    ensure_owner(recipe, user_id, 'Only the recipe creator can delete this recipe')

    with atomic(session) as uow:
        recipe.deleted_at = datetime.utcnow()
        if recipe.community_id is not None:
            uow.stage(events.RECIPE_DELETED, user_id, recipe.community_id, recipe.id)

    logger.info("Recipe %s soft-deleted by user %s", recipe.id, user_id)
    return recipe


def get_recipe_for_user(session, recipe_id, user_id):
    recipe = require_recipe(session, recipe_id)
    ensure_can_view(session, recipe, user_id)
    return recipe


def get_recipe_variants(session, recipe_id, user_id):
    """Variants branched from a recipe, most recently touched first."""
    recipe = get_recipe_for_user(session, recipe_id, user_id)

    query = session.query(Recipe).filter(
        Recipe.origin_recipe_id == recipe.id,
        Recipe.is_variant.is_(True),
        Recipe.deleted_at.is_(None),
    )
    if recipe.community_id is not None:
        query = query.filter(Recipe.community_id == recipe.community_id)

    variants = query.all()
    return sorted(variants, key=lambda v: (max(v.created_at, v.updated_at or v.created_at), v.id), reverse=True)
