"""
Per-category serialization of governance operations.

Two layers:
    - a process-local ``threading.Lock`` per category (threads of one worker)
    - ``SELECT … FOR UPDATE`` on the category's ``template_defaults`` row
      (other workers / hosts; a no-op on SQLite)

The row lock is held until the caller commits or rolls back, so the
caller must finish its transaction inside the ``with`` block.  An
exception escaping the block rolls the transaction back.
Categories never contend with each other.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager

from sqlalchemy import select

from template_governance.models import db
from template_governance.models.template import TemplateDefault

logger = logging.getLogger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(category: str) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(category)
        if lock is None:
            lock = _locks[category] = threading.Lock()
        return lock


@contextmanager
def category_lock(category: str):
    """Serialize governance writes for ``category``.

    Yields the locked TemplateDefault row (None if the category has not
    been seeded yet).
    """
    lock = _lock_for(category)
    lock.acquire()
    try:
        pointer = db.session.execute(
            select(TemplateDefault)
            .where(TemplateDefault.category == category)
            .with_for_update()
        ).scalar_one_or_none()
        yield pointer
    except Exception:
        db.session.rollback()
        raise
    finally:
        lock.release()
