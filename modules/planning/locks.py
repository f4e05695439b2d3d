"""In-process serialization of completions per contract/site/kind.

Two overlapping completions of the same series could both miss an existing
follow-up and create two. The contract row lock taken by the completion
handler covers multi-process deployments on databases with FOR UPDATE; this
registry covers threads sharing one process (and SQLite, which has no row
locks).

A series lock taken through ``hold_series_lock`` stays held until the
session's transaction ends, so the next completion of the series only reads
after the previous one has committed or rolled back.
"""
import threading
from typing import Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from .models import InterventionKind

_registry_lock = threading.Lock()
_series_locks: dict[tuple, threading.Lock] = {}

_HELD_KEY = "planning_series_locks"


def series_key(contract_id: int, site_id: Optional[int], kind: InterventionKind) -> tuple:
    return (contract_id, site_id, InterventionKind(kind).value)


def _lock_for(key: tuple) -> threading.Lock:
    with _registry_lock:
        lock = _series_locks.get(key)
        if lock is None:
            lock = _series_locks[key] = threading.Lock()
        return lock


def hold_series_lock(session: Session, contract_id: int, site_id: Optional[int],
                     kind: InterventionKind) -> None:
    """Acquire the series lock for the rest of the session's transaction.

    Re-entrant per session: a second completion of the same series in one
    transaction does not wait on itself.
    """
    key = series_key(contract_id, site_id, kind)
    held = session.info.setdefault(_HELD_KEY, {})
    if key in held:
        return
    lock = _lock_for(key)
    lock.acquire()
    held[key] = lock
    if not event.contains(session, "after_transaction_end", _release_held):
        event.listen(session, "after_transaction_end", _release_held)


def _release_held(session: Session, transaction) -> None:
    # Savepoints end inside the outer transaction
    if transaction.parent is not None:
        return
    for lock in session.info.pop(_HELD_KEY, {}).values():
        lock.release()
