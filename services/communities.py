import logging
from datetime import datetime

from services import events
from services.proposals import handle_orphaned_recipes
from services.recipe_graph import require_community, require_membership
from services.transaction import atomic

logger = logging.getLogger(__name__)


def leave_community(session, user_id, community_id):
    """End a membership; pending proposals on the member's recipes become variants."""
    require_community(session, community_id)
    membership = require_membership(session, user_id, community_id)

    with atomic(session) as uow:
        membership.deleted_at = datetime.utcnow()
        result = handle_orphaned_recipes(uow, user_id, community_id)
        uow.stage(events.USER_LEFT, user_id, community_id)

    logger.info("User %s left community %s (%s proposals auto-rejected)",
                user_id, community_id, result["auto_rejected_proposals"])
    return result
