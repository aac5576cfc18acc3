"""
Versioned-entity history.

An entity opts in by exposing an integer ``version`` column and a
``history_fields`` tuple; its history model provides
``from_entity(entity, saved_by_id)``.  ``snapshot_and_apply`` writes the
pre-change snapshot, applies the change and bumps the version in the caller's
transaction.  The caller commits the whole unit once.
"""

import copy

from projecthub.models import db


def snapshot_and_apply(entity, history_model, changes: dict, actor_id):
    """
    Snapshot *entity* at its current version, apply *changes*, then
    increment ``version`` by exactly one.

    Returns the history row (flushed, not committed).
    """
    snapshot = history_model.from_entity(entity, actor_id)
    db.session.add(snapshot)

    for field, value in changes.items():
        setattr(entity, field, copy.deepcopy(value))
    entity.version = (entity.version or 1) + 1

    db.session.flush()
    return snapshot

