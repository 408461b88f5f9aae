# Overview: Transaction boundaries and row locking for multi-step ledger operations.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from flask import current_app

from ..extensions import db
from ..validation import LedgerError, PartialFailureError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class UnitOfWork:
    """
    All-or-nothing boundary for one ledger operation.

    Every write of the operation (primary fact, audit metadata, compensating
    cash entry, status updates) goes through the same session and commits
    once on exit. Steps are flushed as they are recorded so a database error
    surfaces at the step that caused it.

    On a LedgerError the session is rolled back and the error re-raised as-is.
    On a database error after one or more steps the session is rolled back and
    a PartialFailureError names the steps that had been flushed.

        with UnitOfWork("delete_transaction") as uow:
            tx.deleted = True
            uow.step("soft_delete")
            ...
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.completed_steps: list[str] = []

    def step(self, name: str) -> None:
        db.session.flush()
        self.completed_steps.append(name)

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                db.session.commit()
            except SQLAlchemyError as commit_exc:
                db.session.rollback()
                current_app.logger.exception("%s failed at commit", self.operation)
                raise PartialFailureError(self.operation, self.completed_steps, commit_exc) from commit_exc
            return False

        db.session.rollback()

        if issubclass(exc_type, LedgerError):
            return False

        if issubclass(exc_type, SQLAlchemyError):
            current_app.logger.error(
                "%s rolled back after steps %s: %s", self.operation, self.completed_steps, exc
            )
            raise PartialFailureError(self.operation, self.completed_steps, exc) from exc

        return False
