"""Tests for the unit of work scopes."""

import pytest
from sqlalchemy import func, select

from elementkit.domain.entities import ElementRecord
from elementkit.infra import uow
from elementkit.infra.uow import in_transaction, transaction


def count_elements(db):
    return db.scalar(select(func.count()).select_from(ElementRecord))


class TestTransaction:
    def test_outermost_scope_commits(self, db):
        with transaction(db) as scope:
            assert scope.owned
            assert in_transaction(db)
            db.add(ElementRecord(type="Entry"))

        assert not in_transaction(db)
        db.rollback()
        assert count_elements(db) == 1

    def test_exception_rolls_back(self, db):
        with pytest.raises(RuntimeError):
            with transaction(db):
                db.add(ElementRecord(type="Entry"))
                db.flush()
                raise RuntimeError("boom")

        assert count_elements(db) == 0
        assert not in_transaction(db)

    def test_requested_rollback(self, db):
        with transaction(db) as scope:
            db.add(ElementRecord(type="Entry"))
            db.flush()
            scope.request_rollback()

        assert count_elements(db) == 0

    def test_nested_scopes_join_the_outer_one(self, db):
        with transaction(db) as outer:
            with transaction(db) as inner:
                assert not inner.owned
                db.add(ElementRecord(type="Entry"))
                # Only the outermost scope decides
                inner.request_rollback()
            assert not inner.rollback_requested
            db.add(ElementRecord(type="Entry"))
            assert outer.owned

        assert count_elements(db) == 2

    def test_nested_failure_rolls_back_everything(self, db):
        with pytest.raises(ValueError):
            with transaction(db):
                db.add(ElementRecord(type="Entry"))
                db.flush()
                with transaction(db):
                    raise ValueError("inner")

        assert count_elements(db) == 0


class TestSession:
    def test_session_commits_and_closes(self, engine):
        with uow.session() as db:
            assert in_transaction(db)
            db.add(ElementRecord(type="User"))

        with uow.session() as db:
            assert count_elements(db) == 1

    def test_session_rolls_back_on_error(self, engine):
        with pytest.raises(RuntimeError):
            with uow.session() as db:
                db.add(ElementRecord(type="User"))
                db.flush()
                raise RuntimeError("boom")

        with uow.session() as db:
            assert count_elements(db) == 0
