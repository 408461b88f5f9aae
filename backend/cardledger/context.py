"""
Caller identity for ledger operations.

Every service call receives the identity it acts for explicitly instead of
reading it from request-global state, so the same operation behaves the same
from an HTTP route, a CLI command, or a test.

A mentor may browse another owner's books. That view is read-only: the
context carries both ids and write operations refuse to run when they differ.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .validation import ReadOnlyContextError


@dataclass(frozen=True)
class LedgerContext:
    owner_id: int
    viewer_id: Optional[int] = None

    @property
    def is_mentor_view(self) -> bool:
        return self.viewer_id is not None and self.viewer_id != self.owner_id

    @property
    def actor_id(self) -> int:
        return self.viewer_id if self.viewer_id is not None else self.owner_id

    def require_writable(self) -> None:
        if self.is_mentor_view:
            raise ReadOnlyContextError("Cannot edit data while in mentor view mode")
