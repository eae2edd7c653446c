"""Unit-of-work and compare-and-swap helpers shared by the lifecycle commands."""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything done in the block, or roll all of it back."""

    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def swap_status(
    db: Session,
    model: Any,
    row_id: int,
    expected: Iterable[Any],
    **values: Any,
) -> bool:
    """Apply ``values`` only if the row's status is still one of ``expected``.

    Returns ``False`` when another writer moved the row first.
    """

    db.flush()
    stmt = (
        update(model)
        .where(model.id == row_id, model.status.in_(list(expected)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount == 1


__all__ = ["swap_status", "unit_of_work"]
