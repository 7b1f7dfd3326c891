import logging
from collections import namedtuple
from datetime import datetime

from models import Recipe, Tag, TagSuggestion, UserCommunity, recipe_tags
from models.Community import MODERATOR
from models.Tag import APPROVED, COMMUNITY, GLOBAL, PENDING
from models.TagSuggestion import PENDING_MODERATOR
from models.TagSuggestion import APPROVED as SUGGESTION_APPROVED
from models.TagSuggestion import REJECTED as SUGGESTION_REJECTED
from services import events
from services.errors import InvalidInput, LimitExceeded, NotFound, PermissionDenied
from services.transaction import atomic
from services.validation import MAX_COMMUNITY_TAGS, MAX_TAGS_PER_RECIPE, normalize_names

logger = logging.getLogger(__name__)

ResolvedTags = namedtuple('ResolvedTags', ['tag_ids', 'pending_tag_ids'])


def find_global_tag(session, name):
    return session.query(Tag).filter_by(name=name, scope=GLOBAL, status=APPROVED, community_id=None).first()


def find_community_tag(session, name, community_id, status=None):
    query = session.query(Tag).filter_by(name=name, scope=COMMUNITY, community_id=community_id)
    if status is not None:
        query = query.filter_by(status=status)
    return query.first()


def count_community_tags(session, community_id):
    return session.query(Tag).filter_by(community_id=community_id, scope=COMMUNITY).count()


def _create_pending_community_tag(session, name, community_id, user_id):
    tag = Tag(name=name, scope=COMMUNITY, status=PENDING, community_id=community_id, created_by_id=user_id)
    session.add(tag)
    session.flush()
    logger.info("Created pending tag %r in community %s", name, community_id)
    return tag


def resolve_tags(session, names, user_id, community_id):
    """Resolve tag names to tag ids for a recipe.

    Per name, first match wins:
      1. an APPROVED GLOBAL tag;
      2. with a community, that community's tag (APPROVED or PENDING);
      3. with a community, a new COMMUNITY/PENDING tag, if under the cap;
      4. without a community (personal recipe), a new GLOBAL/APPROVED tag.

    Returns ``ResolvedTags(tag_ids, pending_tag_ids)``.
    """
    normalized = normalize_names(names)
    if len(normalized) > MAX_TAGS_PER_RECIPE:
        raise LimitExceeded('TAG_003', f'Maximum {MAX_TAGS_PER_RECIPE} tags per recipe')

    tag_ids = []
    pending_tag_ids = []

    for name in normalized:
        tag = find_global_tag(session, name)
        if tag:
            tag_ids.append(tag.id)
            continue

        if community_id is not None:
            tag = find_community_tag(session, name, community_id)
            if tag:
                tag_ids.append(tag.id)
                if tag.is_pending:
                    pending_tag_ids.append(tag.id)
                continue

            if count_community_tags(session, community_id) >= MAX_COMMUNITY_TAGS:
                raise LimitExceeded('TAG_003', f'Community tag limit reached ({MAX_COMMUNITY_TAGS})')

            tag = _create_pending_community_tag(session, name, community_id, user_id)
            tag_ids.append(tag.id)
            pending_tag_ids.append(tag.id)
            continue

        # Personal recipes never open a moderation queue
        tag = Tag(name=name, scope=GLOBAL, status=APPROVED, created_by_id=user_id)
        session.add(tag)
        session.flush()
        tag_ids.append(tag.id)

    return ResolvedTags(tag_ids, pending_tag_ids)


def resolve_tags_for_fork(session, source_tags, target_community_id, user_id):
    """Map a source recipe's tags into the target community of a fork.

    GLOBAL tags travel by identity. COMMUNITY tags are matched by name against
    the target's APPROVED tag, then its PENDING tag, else a PENDING tag is
    created there, subject to the community tag cap. Returns ``ResolvedTags``.
    """
    tag_ids = []
    pending_tag_ids = []

    for source_tag in source_tags:
        if source_tag.scope == GLOBAL:
            if source_tag.id not in tag_ids:
                tag_ids.append(source_tag.id)
            continue

        tag = find_community_tag(session, source_tag.name, target_community_id, status=APPROVED)
        if tag is None:
            tag = find_community_tag(session, source_tag.name, target_community_id, status=PENDING)
        if tag is None:
            if count_community_tags(session, target_community_id) >= MAX_COMMUNITY_TAGS:
                raise LimitExceeded('TAG_003', f'Community tag limit reached ({MAX_COMMUNITY_TAGS})')
            tag = _create_pending_community_tag(session, source_tag.name, target_community_id, user_id)

        if tag.id not in tag_ids:
            tag_ids.append(tag.id)
            if tag.is_pending:
                pending_tag_ids.append(tag.id)

    return ResolvedTags(tag_ids, pending_tag_ids)


def link_tags(session, recipe, tag_ids):
    for tag_id in tag_ids:
        session.execute(recipe_tags.insert().values(recipe_id=recipe.id, tag_id=tag_id))
    session.expire(recipe, ['tags'])


def replace_recipe_tags(session, recipe, names, user_id):
    """Swap a recipe's tags for the resolution of `names`. Tags stay local to the recipe."""
    resolved = resolve_tags(session, names, user_id, recipe.community_id)
    session.execute(recipe_tags.delete().where(recipe_tags.c.recipe_id == recipe.id))
    link_tags(session, recipe, resolved.tag_ids)
    return resolved


## COMMUNITY TAG MODERATION ##

def _load_pending_tag_for_moderator(session, tag_id, moderator_id, community_id=None):
    tag = session.get(Tag, tag_id)
    if tag is None or tag.scope != COMMUNITY or community_id not in (None, tag.community_id):
        raise NotFound('TAG_001', 'Tag not found')

    membership = session.query(UserCommunity).filter_by(
        user_id=moderator_id, community_id=tag.community_id, deleted_at=None
    ).first()
    if membership is None or membership.role != MODERATOR:
        raise PermissionDenied('TAG_005', 'Only moderators can moderate community tags')

    if tag.status != PENDING:
        raise InvalidInput('TAG_004', 'Tag is not pending')
    return tag


def _pending_suggestions_for(session, tag):
    return (
        session.query(TagSuggestion)
        .join(Recipe, TagSuggestion.recipe_id == Recipe.id)
        .filter(
            TagSuggestion.tag_name == tag.name,
            TagSuggestion.status == PENDING_MODERATOR,
            Recipe.community_id == tag.community_id,
        )
        .all()
    )


def approve_community_tag(session, tag_id, moderator_id, community_id=None):
    tag = _load_pending_tag_for_moderator(session, tag_id, moderator_id, community_id)

    with atomic(session) as uow:
        now = datetime.utcnow()
        tag.status = APPROVED
        for suggestion in _pending_suggestions_for(session, tag):
            suggestion.status = SUGGESTION_APPROVED
            suggestion.decided_at = now

        uow.stage(events.TAG_APPROVED, moderator_id, tag.community_id, tagId=tag.id, tagName=tag.name)

    logger.info("Tag %s approved in community %s", tag.id, tag.community_id)
    return tag


def reject_community_tag(session, tag_id, moderator_id, community_id=None):
    tag = _load_pending_tag_for_moderator(session, tag_id, moderator_id, community_id)
    tag_name, community_id = tag.name, tag.community_id

    with atomic(session) as uow:
        now = datetime.utcnow()
        for suggestion in _pending_suggestions_for(session, tag):
            suggestion.status = SUGGESTION_REJECTED
            suggestion.decided_at = now

        session.execute(recipe_tags.delete().where(recipe_tags.c.tag_id == tag.id))
        session.delete(tag)

        uow.stage(events.TAG_REJECTED, moderator_id, community_id, tagId=tag_id, tagName=tag_name)

    logger.info("Tag %r rejected and removed from community %s", tag_name, community_id)
