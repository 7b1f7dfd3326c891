"""Recipe family graph.

Families are stored as a nullable self-reference (`origin_recipe_id`). Walks are
repeated indexed lookups by id, never a cached object graph.
"""
import logging
from collections import deque

from models import Community, Recipe, UserCommunity
from models.Recipe import RecipeKind
from services.errors import NotFound, PermissionDenied

logger = logging.getLogger(__name__)


def get_recipe(session, recipe_id, include_deleted=False):
    if recipe_id is None:
        return None
    query = session.query(Recipe).filter(Recipe.id == recipe_id)
    if not include_deleted:
        query = query.filter(Recipe.deleted_at.is_(None))
    return query.first()


def require_recipe(session, recipe_id):
    recipe = get_recipe(session, recipe_id)
    if recipe is None:
        raise NotFound('RECIPE_001', 'Recipe not found')
    return recipe


def get_community(session, community_id):
    if community_id is None:
        return None
    return session.query(Community).filter(Community.id == community_id, Community.deleted_at.is_(None)).first()


def require_community(session, community_id):
    community = get_community(session, community_id)
    if community is None:
        raise NotFound('COMMUNITY_002', 'Community not found')
    return community


def get_membership(session, user_id, community_id):
    return session.query(UserCommunity).filter_by(user_id=user_id, community_id=community_id, deleted_at=None).first()


def require_membership(session, user_id, community_id, code='COMMUNITY_001', message='Not a member'):
    membership = get_membership(session, user_id, community_id)
    if membership is None:
        raise PermissionDenied(code, message)
    return membership


def _synchronizable(query):
    return query.filter(
        Recipe.deleted_at.is_(None),
        Recipe.is_variant.is_(False),
        Recipe.shared_from_community_id.is_(None),
    )


def find_linked_recipes(session, recipe):
    """Return the recipes that must mirror synchronized edits made to `recipe`.

    A personal recipe is linked to its community copies. A community-linked
    copy is linked to its personal origin and to the sibling copies of that
    origin. Forks and variants are linked to nothing, and nothing links to them.
    """
    kind = recipe.kind

    if kind == RecipeKind.PERSONAL:
        return _synchronizable(session.query(Recipe)).filter(
            Recipe.origin_recipe_id == recipe.id,
            Recipe.community_id.isnot(None),
        ).order_by(Recipe.id).all()

    if kind != RecipeKind.COMMUNITY_COPY or recipe.origin_recipe_id is None:
        return []

    linked = []
    origin = _synchronizable(session.query(Recipe)).filter(
        Recipe.id == recipe.origin_recipe_id,
        Recipe.community_id.is_(None),
    ).first()
    if origin is None:
        logger.warning("Recipe %s points to missing origin %s; syncing siblings only", recipe.id, recipe.origin_recipe_id)
    else:
        linked.append(origin)

    siblings = _synchronizable(session.query(Recipe)).filter(
        Recipe.origin_recipe_id == recipe.origin_recipe_id,
        Recipe.community_id.isnot(None),
        Recipe.id != recipe.id,
    ).order_by(Recipe.id).all()
    linked.extend(siblings)
    return linked


def ancestor_ids(session, recipe_id, include_deleted=True):
    """Ids on the origin chain of `recipe_id`, starting with the recipe itself.

    The walk stops at the first missing parent; with ``include_deleted=False``
    a soft-deleted parent also ends the chain.
    """
    chain = []
    current = get_recipe(session, recipe_id, include_deleted=include_deleted)
    while current is not None and current.id not in chain:
        chain.append(current.id)
        if current.origin_recipe_id is None:
            break
        parent = get_recipe(session, current.origin_recipe_id, include_deleted=include_deleted)
        if parent is None:
            logger.warning("Broken origin link %s -> %s", current.id, current.origin_recipe_id)
        current = parent
    return chain


def find_root_id(session, recipe_id):
    chain = ancestor_ids(session, recipe_id, include_deleted=False)
    return chain[-1] if chain else None


def descendant_ids(session, root_id):
    """Breadth-first collection of `root_id` and every non-deleted descendant."""
    family = [root_id]
    seen = {root_id}
    queue = deque([root_id])
    while queue:
        parent_id = queue.popleft()
        children = session.query(Recipe.id).filter(
            Recipe.origin_recipe_id == parent_id,
            Recipe.deleted_at.is_(None),
        ).order_by(Recipe.id).all()
        for (child_id,) in children:
            if child_id not in seen:
                seen.add(child_id)
                family.append(child_id)
                queue.append(child_id)
    return family


def family_ids(session, recipe_id):
    root_id = find_root_id(session, recipe_id)
    if root_id is None:
        return []
    return descendant_ids(session, root_id)


def find_copy_in_community(session, origin_recipe_id, community_id):
    return session.query(Recipe).filter(
        Recipe.origin_recipe_id == origin_recipe_id,
        Recipe.community_id == community_id,
        Recipe.deleted_at.is_(None),
    ).first()
