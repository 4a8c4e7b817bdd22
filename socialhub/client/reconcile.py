"""Optimistic mutations and idempotent merge-by-id for client-side lists.

Every view keeps its rows in a :class:`ReconciledList`. Rows arrive from three
places: the initial fetch, direct responses to the user's own mutations, and
push events from the realtime channel. All three go through
:meth:`ReconciledList.apply`, so a row delivered twice (response plus echo)
is stored once and a delete for a row that is already gone is a no-op.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Iterator, Mapping, TypeVar

from ..errors import SocialError
from ..schemas import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

Row = dict[str, Any]
R = TypeVar("R")

PENDING_ID_PREFIX = "pending-"


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Placement(str, Enum):
    """Where inserted rows land: chats grow at the tail, comment threads at the head."""

    HEAD = "head"
    TAIL = "tail"


@dataclass
class Mutation(Generic[R]):
    """One user action moving from ``PENDING`` to ``COMMITTED`` or ``ROLLED_BACK``."""

    description: str
    state: MutationState = MutationState.PENDING
    result: R | None = None
    error: SocialError | None = None

    def commit(self, result: R | None = None) -> None:
        self._leave_pending(MutationState.COMMITTED)
        self.result = result

    def roll_back(self, error: SocialError) -> None:
        self._leave_pending(MutationState.ROLLED_BACK)
        self.error = error

    def _leave_pending(self, target: MutationState) -> None:
        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"Mutation '{self.description}' is already {self.state.value}")
        self.state = target

    @property
    def committed(self) -> bool:
        return self.state is MutationState.COMMITTED


def pending_id() -> str:
    """Temporary id for an optimistic row that the store has not assigned yet."""

    return f"{PENDING_ID_PREFIX}{uuid.uuid4().hex}"


def _row_id(row: Mapping[str, Any], key: str) -> str:
    return str(row[key])


@dataclass
class ReconciledList:
    """Ordered rows keyed by id with idempotent insert, replace and remove.

    The realtime listener thread and the view's own thread both write to the
    list, so every read-modify-write runs under ``lock``.
    """

    rows: list[Row] = field(default_factory=list)
    placement: Placement = Placement.TAIL
    key: str = "id"
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]], *, placement: Placement = Placement.TAIL) -> "ReconciledList":
        merged = cls(placement=Placement.TAIL)
        for row in rows:
            merged.apply(ChangeKind.INSERT, row)
        merged.placement = placement
        return merged

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        with self.lock:
            return iter(list(self.rows))

    def __contains__(self, row_id: object) -> bool:
        return self.index_of(str(row_id)) is not None

    def ids(self) -> list[str]:
        with self.lock:
            return [_row_id(row, self.key) for row in self.rows]

    def index_of(self, row_id: str) -> int | None:
        with self.lock:
            for index, row in enumerate(self.rows):
                if _row_id(row, self.key) == row_id:
                    return index
            return None

    def get(self, row_id: object) -> Row | None:
        with self.lock:
            index = self.index_of(str(row_id))
            return None if index is None else self.rows[index]

    def apply(self, kind: ChangeKind, row: Mapping[str, Any]) -> bool:
        """Merge one change; returns whether the list changed.

        INSERT of a known id replaces it in place; UPDATE of an unknown id is
        ignored; DELETE removes the row if present.
        """

        row_id = _row_id(row, self.key)
        with self.lock:
            index = self.index_of(row_id)
            if kind is ChangeKind.DELETE:
                if index is None:
                    return False
                del self.rows[index]
                return True
            if index is not None:
                merged = {**self.rows[index], **row}
                if merged == self.rows[index]:
                    return False
                self.rows[index] = merged
                return True
            if kind is ChangeKind.UPDATE:
                return False
            if self.placement is Placement.HEAD:
                self.rows.insert(0, dict(row))
            else:
                self.rows.append(dict(row))
            return True

    def apply_event(self, event: ChangeEvent) -> bool:
        return self.apply(event.kind, event.row)

    def insert_at(self, index: int, row: Mapping[str, Any]) -> None:
        """Put a previously removed row back at its old position (rollback of a delete)."""

        with self.lock:
            if self.index_of(_row_id(row, self.key)) is None:
                self.rows.insert(min(index, len(self.rows)), dict(row))

    def swap(self, old_id: str, row: Mapping[str, Any]) -> None:
        """Replace an optimistic row with the stored one, deduplicating against an earlier echo."""

        new_id = _row_id(row, self.key)
        with self.lock:
            index = self.index_of(old_id)
            if index is None:
                self.apply(ChangeKind.INSERT, row)
                return
            if self.index_of(new_id) is not None:
                # The realtime echo already delivered the stored row.
                del self.rows[index]
                self.apply(ChangeKind.UPDATE, row)
                return
            self.rows[index] = dict(row)


def run_mutation(
    description: str,
    *,
    optimistic: Callable[[], Callable[[], None]],
    request: Callable[[], R],
    on_commit: Callable[[R], None] | None = None,
) -> Mutation[R]:
    """Apply an optimistic change, issue ``request`` and settle the mutation.

    ``optimistic`` performs the local change and returns the function that
    undoes it. The undo runs for every failed request, whatever the mutation
    type; the error is logged and kept on the returned mutation.
    """

    mutation: Mutation[R] = Mutation(description)
    revert = optimistic()
    try:
        result = request()
    except SocialError as exc:
        revert()
        mutation.roll_back(exc)
        logger.warning("%s failed: %s", description, exc.detail)
        return mutation

    mutation.commit(result)
    if on_commit is not None:
        on_commit(result)
    return mutation


__all__ = [
    "MutationState",
    "Mutation",
    "Placement",
    "ReconciledList",
    "pending_id",
    "run_mutation",
    "PENDING_ID_PREFIX",
]
