"""Per-provider serialization for check-then-write sequences.

A conflict check and the insert/update that depends on it must not interleave
with another writer for the same provider. Inside one process that is a
``threading.Lock`` per provider id; on PostgreSQL a transaction-scoped advisory
lock extends it across worker processes. Both are released when the block
exits, so callers commit (or fail) inside the ``with``.

The registry holds one lock per provider id seen by this process and is never
pruned.
"""
from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session


ADVISORY_LOCK_NAMESPACE = 7301

_registry_lock = threading.Lock()
_provider_locks: dict[int, threading.Lock] = defaultdict(threading.Lock)


def _lock_for_provider(provider_id: int) -> threading.Lock:
    with _registry_lock:
        return _provider_locks[provider_id]


def _is_postgres(db: Session) -> bool:
    bind = db.get_bind()
    return getattr(bind.dialect, "name", "") == "postgresql"


@contextmanager
def provider_write_lock(db: Session, provider_id: int) -> Iterator[None]:
    lock = _lock_for_provider(provider_id)
    with lock:
        try:
            if _is_postgres(db):
                db.execute(
                    text("SELECT pg_advisory_xact_lock(:namespace, :provider_id)"),
                    {"namespace": ADVISORY_LOCK_NAMESPACE, "provider_id": provider_id},
                )
            yield
        except Exception:
            db.rollback()
            raise
