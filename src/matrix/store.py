"""
Matrix store.

Owns the single matrix and selection state. Every mutation is a narrow
command keyed by row identity and tagged with the operation token that
produced it; commands carrying a superseded token are dropped. Within one
selection, age and base-amount recomputes advance a `Generation`; a row
patch computed under an older generation loses the fields a newer
recompute owns.
"""

from __future__ import annotations

import copy
import logging
from collections import OrderedDict
from typing import Any, Callable, Iterable, List, Optional

from src.integrations.contracts.interfaces import SelectionPhase
from src.matrix.models import Generation, MatrixSnapshot, Row, RowKey, SelectionState

logger = logging.getLogger(__name__)

Listener = Callable[[MatrixSnapshot], None]


class MatrixStore:
    def __init__(self, age: int = 15, base_amount: int = 100) -> None:
        self._state = SelectionState(age=age, base_amount=base_amount)
        self._rows: "OrderedDict[RowKey, Row]" = OrderedDict()
        self._listeners: List[Listener] = []
        self._generation = Generation()

    # -- Reads --

    @property
    def token(self) -> int:
        return self._state.token

    @property
    def generation(self) -> Generation:
        return self._generation

    @property
    def age(self) -> int:
        return self._state.age

    @property
    def base_amount(self) -> int:
        return self._state.base_amount

    def is_current(self, token: int) -> bool:
        return token == self._state.token

    def row_keys(self) -> List[RowKey]:
        return list(self._rows)

    def get_row(self, key: RowKey) -> Row:
        return self._rows[key]

    def snapshot(self) -> MatrixSnapshot:
        return MatrixSnapshot(rows=list(self._rows.values()), state=copy.deepcopy(self._state))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- Commands --

    def begin_selection(self, primary_code: str) -> int:
        """Clear the matrix and errors, reset progress and issue a new token."""
        self._state.token += 1
        self._state.primary_code = primary_code
        self._state.related_codes = []
        self._state.errors = []
        self._state.progress = 0
        self._state.is_loading = True
        self._state.phase = SelectionPhase.RESOLVING
        self._rows = OrderedDict()
        logger.info("Selection %s started for primary code %s", self._state.token, primary_code)
        self._notify()
        return self._state.token

    def set_phase(self, token: int, phase: SelectionPhase) -> bool:
        if not self._accepts(token, "set_phase"):
            return False
        self._state.phase = phase
        self._notify()
        return True

    def set_related_codes(self, token: int, codes: Iterable[str]) -> bool:
        if not self._accepts(token, "set_related_codes"):
            return False
        self._state.related_codes = list(codes)
        self._notify()
        return True

    def publish_rows(self, token: int, rows: Iterable[Row]) -> bool:
        """Replace the whole matrix; only valid before enrichment starts."""
        if not self._accepts(token, "publish_rows"):
            return False
        published: "OrderedDict[RowKey, Row]" = OrderedDict()
        for row in rows:
            if row.key in published:
                raise ValueError(f"Duplicate row key {row.key.label()}")
            published[row.key] = row
        self._rows = published
        self._notify()
        return True

    def begin_recompute(self, premium_only: bool = False) -> Generation:
        """Start a recompute of every row and return the generation its patches must carry."""
        check = self._generation.check if premium_only else self._generation.check + 1
        self._generation = Generation(check, self._generation.premium + 1)
        return self._generation

    def patch_row(self, token: int, key: RowKey, generation: Optional[Generation] = None, **changes: Any) -> bool:
        """Read the current row, patch the given fields, write it back.

        With a `generation`, fields that a newer recompute has taken over are
        dropped from the patch. Returns False when nothing was written.
        """
        if not self._accepts(token, "patch_row"):
            return False
        current = self._rows.get(key)
        if current is None:
            logger.debug("Dropping patch for unknown row %s", key.label())
            return False
        if generation is not None:
            stale = self._generation.supersedes(generation).intersection(changes)
            if stale:
                logger.debug("Dropping superseded %s for %s", sorted(stale), key.label())
                changes = {name: value for name, value in changes.items() if name not in stale}
            if not changes:
                return False
        self._rows[key] = current.patched(**changes)
        self._notify()
        return True

    def append_error(self, token: int, message: str) -> bool:
        if not self._accepts(token, "append_error"):
            return False
        self._state.errors.append(message)
        self._notify()
        return True

    def advance_progress(self, token: int, value: int) -> bool:
        """Progress never moves backwards and 100 is reserved for settle()."""
        if not self._accepts(token, "advance_progress"):
            return False
        value = max(0, min(99, int(value)))
        if value <= self._state.progress:
            return False
        self._state.progress = value
        self._notify()
        return True

    def settle(self, token: int) -> bool:
        if not self._accepts(token, "settle"):
            return False
        self._state.progress = 100
        self._state.is_loading = False
        self._state.phase = SelectionPhase.SETTLED
        self._notify()
        return True

    def set_age(self, age: int) -> None:
        self._state.age = age
        self._notify()

    def set_base_amount(self, base_amount: int) -> None:
        self._state.base_amount = base_amount
        self._notify()

    # -- Internals --

    def _accepts(self, token: int, command: str) -> bool:
        if token != self._state.token:
            logger.debug("Discarding %s from superseded operation %s (active=%s)", command, token, self._state.token)
            return False
        return True

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Matrix listener failed")