# Overview: Service-layer operations for concurrency; row locking for lifecycle writes.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Concurrent assign/advance calls on one delivery are serialized by this
    lock; within the allowed edges the last writer wins.
    """
    return query.with_for_update()
