import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()

# Receivers get the DomainEvent as the signal sender: activity.connect(fn)
activity = _signals.signal('activity')

RECIPE_CREATED = 'RECIPE_CREATED'
RECIPE_UPDATED = 'RECIPE_UPDATED'
RECIPE_DELETED = 'RECIPE_DELETED'
RECIPE_SHARED = 'RECIPE_SHARED'
VARIANT_PROPOSED = 'VARIANT_PROPOSED'
PROPOSAL_ACCEPTED = 'PROPOSAL_ACCEPTED'
PROPOSAL_REJECTED = 'PROPOSAL_REJECTED'
VARIANT_CREATED = 'VARIANT_CREATED'
TAG_SUGGESTION_CREATED = 'TAG_SUGGESTION_CREATED'
TAG_SUGGESTION_ACCEPTED = 'TAG_SUGGESTION_ACCEPTED'
TAG_SUGGESTION_REJECTED = 'TAG_SUGGESTION_REJECTED'
TAG_APPROVED = 'TAG_APPROVED'
TAG_REJECTED = 'TAG_REJECTED'
USER_LEFT = 'USER_LEFT'


@dataclass
class DomainEvent:
    kind: str
    user_id: int
    community_id: Optional[int]
    recipe_id: Optional[int] = None
    target_user_ids: Optional[List[int]] = None
    metadata: Dict = field(default_factory=dict)


def emit(event):
    """Hand a committed event to the notification layer.

    Delivery is fire-and-forget: a failing receiver is logged and the
    committed mutation stands.
    """
    for receiver in activity.receivers_for(event):
        try:
            receiver(event)
        except Exception:
            logger.exception("Failed to deliver %s event for recipe %s", event.kind, event.recipe_id)
