import logging
from datetime import datetime

from models import TagSuggestion
from models.Tag import APPROVED as TAG_APPROVED
from models.TagSuggestion import APPROVED, PENDING_MODERATOR, PENDING_OWNER, REJECTED
from services import events
from services.errors import AlreadyDecided, Conflict, InvalidInput, LimitExceeded, NotFound, PermissionDenied
from services.recipe_graph import require_membership, require_recipe
from services.tags import find_community_tag, find_global_tag, link_tags, resolve_tags
from services.transaction import atomic
from services.validation import MAX_TAGS_PER_RECIPE, validate_tag_name

logger = logging.getLogger(__name__)


def create_tag_suggestion(session, recipe_id, tag_name, suggested_by_id):
    name = validate_tag_name(tag_name)

    recipe = require_recipe(session, recipe_id)
    if recipe.community_id is None:
        raise InvalidInput('TAG_007', 'Cannot suggest tags on personal recipes')
    require_membership(session, suggested_by_id, recipe.community_id)
    if recipe.creator_id == suggested_by_id:
        raise PermissionDenied('TAG_007', 'Cannot suggest tags on your own recipe')

    duplicate = session.query(TagSuggestion).filter_by(
        recipe_id=recipe.id, tag_name=name, suggested_by_id=suggested_by_id
    ).first()
    if duplicate is not None:
        raise Conflict('TAG_006', 'You already suggested this tag on this recipe')
    if any(tag.name == name for tag in recipe.tags):
        raise Conflict('TAG_002', 'Recipe already has this tag')
    if len(recipe.tags) >= MAX_TAGS_PER_RECIPE:
        raise LimitExceeded('TAG_003', f'Maximum {MAX_TAGS_PER_RECIPE} tags per recipe')

    with atomic(session) as uow:
        suggestion = TagSuggestion(
            recipe_id=recipe.id,
            tag_name=name,
            suggested_by_id=suggested_by_id,
            status=PENDING_OWNER,
        )
        session.add(suggestion)
        session.flush()

        uow.stage(events.TAG_SUGGESTION_CREATED, suggested_by_id, recipe.community_id, recipe.id,
                  target_user_ids=[recipe.creator_id] if recipe.creator_id else None,
                  suggestionId=suggestion.id, tagName=name)

    logger.info("Tag %r suggested on recipe %s by user %s", name, recipe.id, suggested_by_id)
    return suggestion


def _load_for_decision(session, suggestion_id, owner_id, action):
    suggestion = session.get(TagSuggestion, suggestion_id)
    if suggestion is None:
        raise NotFound('TAG_007', 'Tag suggestion not found')

    recipe = suggestion.recipe
    if recipe is None or recipe.creator_id is None or recipe.deleted_at is not None:
        # Orphaned: close the suggestion for good, then refuse the decision
        if suggestion.status == PENDING_OWNER:
            suggestion.status = REJECTED
            suggestion.decided_at = datetime.utcnow()
            session.commit()
            logger.info("Tag suggestion %s auto-rejected: recipe no longer available", suggestion.id)
        raise InvalidInput('TAG_007', 'Recipe is no longer available')

    if recipe.creator_id != owner_id:
        raise PermissionDenied('RECIPE_002', f'Only the recipe owner can {action} suggestions')
    if suggestion.status != PENDING_OWNER:
        raise AlreadyDecided('TAG_007', 'Suggestion already decided')
    return suggestion, recipe


def accept_tag_suggestion(session, suggestion_id, owner_id):
    """Accept a suggestion on the owner's recipe.

    An already-approved tag of that name is linked straight away (APPROVED).
    Otherwise the name goes through normal resolution, which opens a
    COMMUNITY/PENDING tag, and the suggestion waits on the moderators
    (PENDING_MODERATOR).
    """
    suggestion, recipe = _load_for_decision(session, suggestion_id, owner_id, 'accept')
    community_id = recipe.community_id

    already_linked = {tag.id for tag in recipe.tags}
    existing = find_global_tag(session, suggestion.tag_name)
    if existing is None and community_id is not None:
        existing = find_community_tag(session, suggestion.tag_name, community_id, status=TAG_APPROVED)

    if (existing is None or existing.id not in already_linked) and len(already_linked) >= MAX_TAGS_PER_RECIPE:
        raise LimitExceeded('TAG_003', f'Maximum {MAX_TAGS_PER_RECIPE} tags per recipe')

    with atomic(session) as uow:
        if existing is not None:
            tag_ids = [existing.id]
            final_status = APPROVED
        else:
            tag_ids = resolve_tags(session, [suggestion.tag_name], suggestion.suggested_by_id, community_id).tag_ids
            final_status = PENDING_MODERATOR

        link_tags(session, recipe, [tag_id for tag_id in tag_ids if tag_id not in already_linked])

        suggestion.status = final_status
        suggestion.decided_at = datetime.utcnow()

        uow.stage(events.TAG_SUGGESTION_ACCEPTED, owner_id, community_id, recipe.id,
                  target_user_ids=[suggestion.suggested_by_id],
                  suggestionId=suggestion.id, tagName=suggestion.tag_name, finalStatus=final_status)

    logger.info("Tag suggestion %s accepted as %s", suggestion.id, final_status)
    return suggestion


def reject_tag_suggestion(session, suggestion_id, owner_id):
    suggestion, recipe = _load_for_decision(session, suggestion_id, owner_id, 'reject')

    with atomic(session) as uow:
        suggestion.status = REJECTED
        suggestion.decided_at = datetime.utcnow()

        uow.stage(events.TAG_SUGGESTION_REJECTED, owner_id, recipe.community_id, recipe.id,
                  target_user_ids=[suggestion.suggested_by_id], suggestionId=suggestion.id)

    return suggestion


def get_tag_suggestions(session, recipe_id, user_id, status=None):
    recipe = require_recipe(session, recipe_id)
    if recipe.community_id is None:
        raise InvalidInput('TAG_007', 'No tag suggestions on personal recipes')
    require_membership(session, user_id, recipe.community_id)

    query = session.query(TagSuggestion).filter_by(recipe_id=recipe.id)
    if status:
        query = query.filter_by(status=status.upper())
    return query.order_by(TagSuggestion.created_at.desc(), TagSuggestion.id.desc()).all()
