import logging

from models import Community, Recipe, RecipeAnalytics, RecipeIngredient, RecipeStep
from models.Community import MODERATOR
from services import events
from services.errors import Conflict, InvalidInput, PermissionDenied
from services.recipe_graph import (
    ancestor_ids,
    family_ids,
    find_copy_in_community,
    get_recipe,
    require_community,
    require_membership,
    require_recipe,
)
from services.tags import link_tags, resolve_tags_for_fork
from services.transaction import atomic

logger = logging.getLogger(__name__)


def _copy_lines(session, source, target):
    for step in source.steps:
        session.add(RecipeStep(recipe_id=target.id, order=step.order, instruction=step.instruction))
    # Ingredients are global, so lines keep their ids
    for ri in source.ingredients:
        session.add(RecipeIngredient(
            recipe_id=target.id,
            ingredient_id=ri.ingredient_id,
            measurement_id=ri.measurement_id,
            quantity=ri.quantity,
            order=ri.order,
        ))
    session.flush()
    session.expire(target, ['steps', 'ingredients'])


def _copy_recipe(session, actor_id, source, community_id, shared_from_community_id=None):
    copy = Recipe(
        title=source.title,
        servings=source.servings,
        prep_time=source.prep_time,
        cook_time=source.cook_time,
        rest_time=source.rest_time,
        image_url=source.image_url,
        creator_id=actor_id,
        community_id=community_id,
        origin_recipe_id=source.id,
        shared_from_community_id=shared_from_community_id,
        is_variant=False,
    )
    session.add(copy)
    session.flush()
    _copy_lines(session, source, copy)
    return copy


def update_ancestor_analytics(session, recipe_id):
    """Count one more share/fork on `recipe_id` and on every ancestor above it."""
    for ancestor_id in ancestor_ids(session, recipe_id, include_deleted=True):
        analytics = session.query(RecipeAnalytics).filter_by(recipe_id=ancestor_id).first()
        if analytics is None:
            session.add(RecipeAnalytics(recipe_id=ancestor_id, shares=1, forks=1))
        else:
            analytics.shares += 1
            analytics.forks += 1
    session.flush()


def fork_recipe(session, actor_id, source, target_community_id, target_community_name):
    """Fork a community recipe into another community.

    The fork is isolated from synchronization from the moment it exists.
    Returns ``(fork, pending_tag_ids)``.
    """
    with atomic(session) as uow:
        fork = _copy_recipe(session, actor_id, source, target_community_id,
                            shared_from_community_id=source.community_id)

        resolved = resolve_tags_for_fork(session, list(source.tags), target_community_id, actor_id)
        link_tags(session, fork, resolved.tag_ids)

        update_ancestor_analytics(session, source.id)

        uow.stage(events.RECIPE_SHARED, actor_id, source.community_id, source.id,
                  targetCommunityId=target_community_id,
                  targetCommunityName=target_community_name,
                  forkedRecipeId=fork.id)
        uow.stage(events.RECIPE_SHARED, actor_id, target_community_id, fork.id,
                  fromCommunityId=source.community_id,
                  originRecipeId=source.id)

    logger.info("Recipe %s forked into community %s as %s", source.id, target_community_id, fork.id)
    return fork, resolved.pending_tag_ids


def share_recipe(session, actor_id, recipe_id, target_community_id):
    """Check who may fork a recipe where, then fork it."""
    if target_community_id is None:
        raise InvalidInput('SHARE_001', 'Target community ID required')

    source = require_recipe(session, recipe_id)
    if source.community_id is None:
        raise InvalidInput('SHARE_002', 'Cannot share personal recipes')
    if source.community_id == target_community_id:
        raise InvalidInput('SHARE_003', 'Cannot share to same community')

    target = require_community(session, target_community_id)

    source_membership = require_membership(session, actor_id, source.community_id,
                                           message='Not a member of source community')
    target_membership = require_membership(session, actor_id, target_community_id,
                                           code='SHARE_004', message='Not a member of target community')

    is_creator = source.creator_id == actor_id
    if not is_creator and MODERATOR not in (source_membership.role, target_membership.role):
        raise PermissionDenied('SHARE_005', 'Must be recipe creator or moderator in one of the communities')

    if find_copy_in_community(session, source.id, target_community_id) is not None:
        raise Conflict('SHARE_006', 'Recipe already shared with this community')

    return fork_recipe(session, actor_id, source, target.id, target.name)


def publish_recipe(session, actor_id, source, community_ids):
    """Publish a personal recipe as synchronized copies in several communities.

    Communities that already hold a copy are skipped. Returns one summary
    dict per created copy.
    """
    summaries = []
    with atomic(session) as uow:
        for community_id in community_ids:
            if find_copy_in_community(session, source.id, community_id) is not None:
                continue

            copy = _copy_recipe(session, actor_id, source, community_id)
            link_tags(session, copy, [tag.id for tag in source.tags])
            uow.stage(events.RECIPE_CREATED, actor_id, community_id, copy.id)
            summaries.append(copy)

    logger.info("Recipe %s published to communities %s", source.id, [c.community_id for c in summaries])
    return [
        {
            "id": copy.id,
            "title": copy.title,
            "community_id": copy.community_id,
            "community": copy.community.to_dict() if copy.community else None,
            "created_at": copy.created_at.isoformat() if copy.created_at else None,
        }
        for copy in summaries
    ]


def publish_personal_recipe(session, actor_id, recipe_id, community_ids):
    if not community_ids:
        raise InvalidInput('PUBLISH_001', 'At least one community ID required')

    source = require_recipe(session, recipe_id)
    if source.community_id is not None:
        raise InvalidInput('PUBLISH_002', 'Can only publish personal recipes')
    if source.creator_id != actor_id:
        raise PermissionDenied('RECIPE_002', 'Cannot access this recipe')

    unique_ids = list(dict.fromkeys(community_ids))
    for community_id in unique_ids:
        require_community(session, community_id)
        require_membership(session, actor_id, community_id,
                           code='PUBLISH_003', message=f'Not a member of community {community_id}')

    return publish_recipe(session, actor_id, source, unique_ids)


def get_recipe_family_communities(session, recipe_id):
    """Distinct communities holding any live member of the recipe's family.

    Returns ``None`` when the recipe does not exist or is deleted.
    """
    if get_recipe(session, recipe_id) is None:
        return None

    ids = family_ids(session, recipe_id)
    community_ids = [
        community_id
        for (community_id,) in session.query(Recipe.community_id).filter(
            Recipe.id.in_(ids),
            Recipe.deleted_at.is_(None),
            Recipe.community_id.isnot(None),
        ).order_by(Recipe.id).all()
    ]

    communities = []
    seen = set()
    for community_id in community_ids:
        if community_id in seen:
            continue
        seen.add(community_id)
        community = session.get(Community, community_id)
        if community is not None:
            communities.append(community)
    return communities
