"""
Scoped transaction primitive.

    with atomic(db):
        ... mutate ...
        audit.log_action(db, ...)

Commits when the block exits normally, rolls back on any exception and
re-raises it. Every mutating core operation runs inside exactly one of these.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except Exception as exc:
        logger.debug("Rolling back transaction: %s", exc)
        db.rollback()
        raise
