"""
Parsing state and snapshots used for backtracking.
"""

import copy

from dataclasses import dataclass

from typing import Generic, Optional, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from pegweave.context import ParsingContext


__all__ = [
    "ParsingState",
    "StateSnapshot",
    "SnapshotAlreadyRestoredError",
]


StateT = TypeVar("StateT", bound="ParsingState")


@dataclass
class ParsingState:
    """
    The consumable parsing position of a :py:class:`.ParsingContext`.

    Subclasses may carry additional fields (e.g. tables used by a particular
    grammar). All fields are copied by :py:meth:`clone` so a subclass need not
    override it unless a field cannot be deep-copied.
    """

    index: int = 0
    """Offset into the content, in code points."""

    def clone(self: StateT) -> StateT:
        """Return an independent copy of this state."""
        return copy.deepcopy(self)


class SnapshotAlreadyRestoredError(RuntimeError):
    """
    Thrown when :py:meth:`StateSnapshot.restore` is called on a snapshot which
    has already been restored.
    """


class StateSnapshot(Generic[StateT]):
    """
    A captured copy of the state of a :py:class:`.ParsingContext`, created
    via :py:meth:`.ParsingContext.snapshot`.

    :py:meth:`restore` installs the captured state and may be called once
    only. :py:meth:`restore_clone` installs a copy of the captured state and
    may be called any number of times (but not after :py:meth:`restore`).
    """

    _context: "ParsingContext[StateT]"

    _state: Optional[StateT]
    """The captured state, None once consumed by :py:meth:`restore`."""

    def __init__(self, context: "ParsingContext[StateT]", state: StateT) -> None:
        self._context = context
        self._state = state.clone()

    @property
    def index(self) -> int:
        """The index captured by this snapshot."""
        return self._check().index

    @property
    def consumed(self) -> bool:
        """True once :py:meth:`restore` has been called."""
        return self._state is None

    def _check(self) -> StateT:
        if self._state is None:
            raise SnapshotAlreadyRestoredError(
                "cannot restore a snapshot after the first call to restore()"
            )
        return self._state

    def restore(self) -> None:
        """Restore the snapshot. May be used once only."""
        state = self._check()
        self._state = None
        self._context._install_state(state)

    def restore_clone(self) -> None:
        """Restore a copy of the snapshot, leaving the snapshot usable."""
        self._context._install_state(self._check().clone())

    def __repr__(self) -> str:
        if self._state is None:
            return "<StateSnapshot (restored)>"
        return f"<StateSnapshot index={self._state.index}>"
