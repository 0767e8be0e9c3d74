"""
Unit of work boundaries. Every write in elementkit runs inside one of these.

Two entry points are provided:

- ``session()`` opens a session for a CLI command or batch job and commits once at the end.
- ``transaction(db)`` wraps a single write operation (save, merge, delete). It only starts
  a transaction when no other ``transaction()``/``session()`` scope is active for ``db``;
  nested scopes join the outer one, and only the outermost scope commits or rolls back.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from .db import SessionLocal

_DEPTH_KEY = "elementkit.tx_depth"


@dataclass
class TransactionScope:
    """Handle for one ``transaction()`` scope."""

    db: Session
    owned: bool
    rollback_requested: bool = False

    def request_rollback(self) -> None:
        """Ask the outermost scope to roll back instead of committing.

        Has no effect on a nested scope; the outer scope decides.
        """
        if self.owned:
            self.rollback_requested = True


@contextlib.contextmanager
def transaction(db: Session) -> Generator[TransactionScope, None, None]:
    """
    Run a write operation inside a transaction, joining an already open one if present.

    - Outermost scope: commits on success, rolls back on exception (and re-raises),
      or rolls back when ``request_rollback()`` was called.
    - Nested scope: never commits or rolls back; exceptions propagate to the outer scope.
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    scope = TransactionScope(db=db, owned=depth == 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield scope
        if scope.owned:
            if scope.rollback_requested:
                db.rollback()
            else:
                db.commit()
    except Exception:
        if scope.owned:
            db.rollback()
        raise
    finally:
        db.info[_DEPTH_KEY] = depth


def in_transaction(db: Session) -> bool:
    """Return True when a unit-of-work scope is active for ``db``."""
    return db.info.get(_DEPTH_KEY, 0) > 0


@contextlib.contextmanager
def session(factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """
    Open a session that commits once when the block exits cleanly.

    An exception rolls everything back and propagates; the session is closed either way.
    Saves, merges and deletes performed inside the block join this unit of work
    rather than committing on their own. ``factory`` overrides the default
    ``SessionLocal`` (e.g. a sessionmaker bound to the test database).

    Usage:
        with session() as db:
            elements = Elements(db)
            elements.save_element(entry)
    """
    db = (factory or SessionLocal)()
    try:
        with transaction(db):
            yield db
    finally:
        db.close()
