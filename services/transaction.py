import logging
from contextlib import contextmanager

from services.errors import DomainError
from services.events import DomainEvent, emit

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transaction-scoped handle passed to every helper of an operation."""

    def __init__(self, session):
        self.session = session
        self.events = []

    def stage(self, kind, user_id, community_id, recipe_id=None, target_user_ids=None, **metadata):
        self.events.append(DomainEvent(
            kind=kind,
            user_id=user_id,
            community_id=community_id,
            recipe_id=recipe_id,
            target_user_ids=target_user_ids,
            metadata=metadata,
        ))


@contextmanager
def atomic(session):
    """Run a block as one transaction, emitting staged events only after commit."""
    uow = UnitOfWork(session)
    try:
        yield uow
        session.commit()
    except DomainError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception("Transaction rolled back")
        raise

    for event in uow.events:
        emit(event)
