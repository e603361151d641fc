"""Row locking and compare-and-swap writes shared by the state machines.

A transition first loads its row ``FOR UPDATE`` (a no-op on SQLite) and
checks preconditions in Python, then writes through :func:`compare_and_set`
so that a concurrent writer that slipped in between is detected by a zero
rowcount instead of being silently overwritten.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session


def load_for_update(s: Session, model, entity_id: int):
    return s.execute(
        select(model)
        .where(model.id == entity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def compare_and_set(
    s: Session,
    model,
    entity_id: int,
    column,
    expected: Iterable[Any],
    values: dict[str, Any],
) -> bool:
    res = s.execute(
        update(model)
        .where(model.id == entity_id, column.in_(list(expected)))
        .values(**values)
        .execution_options(synchronize_session="evaluate")
    )
    return res.rowcount == 1


def current_value(s: Session, model, entity_id: int, column):
    return s.execute(select(column).where(model.id == entity_id)).scalar_one_or_none()
