"""
The parsing context: the input, the current parsing state and the active
expectation frame of one parsing run.
"""

import logging

from dataclasses import replace

from typing import Generic, Optional, TYPE_CHECKING, cast

from pegweave.events import Event
from pegweave.state import ParsingState, StateSnapshot, StateT
from pegweave.expectations import ExpectationFrame, Expectation
from pegweave.error_message_generation import ErrorDescription

if TYPE_CHECKING:
    from pegweave.rules import RuleInvocationInfo


__all__ = [
    "NoMatch",
    "ParsingContext",
]


logger = logging.getLogger(__name__)


class NoMatch(Exception):
    """
    Thrown when the input does not match: by the consumption primitives at
    the end of the input, and by rule bodies and combinators. Combinators
    catch this and backtrack.
    """


class ParsingContext(Generic[StateT]):
    """
    Context of a parsing run.

    Parsers hold a reference to a :py:class:`ParsingContext` which contains
    the input. Several parsers referencing the same context collaborate,
    which allows grammars to be plugged together.

    The parsing state is kept in a :py:class:`.ParsingState`. The current
    state may be captured using :py:meth:`snapshot` and later restored using
    :py:meth:`.StateSnapshot.restore`, allowing backtracking.

    Parameters
    ----------
    content : str
        The input to parse.
    """

    _content: str
    _state: StateT
    _expectation_frame: ExpectationFrame

    content_set_event: "Event[str]"
    """Fired with the new content by :py:meth:`set_content`."""

    expectation_registered_event: "Event[Expectation]"
    """Fired by :py:meth:`register_expectation`."""

    entering_event: "Event[RuleInvocationInfo]"
    leaving_event: "Event[RuleInvocationInfo]"
    failed_event: "Event[RuleInvocationInfo]"
    retrying_event: "Event[RuleInvocationInfo]"
    recursive_event: "Event[RuleInvocationInfo]"

    def __init__(self, content: str) -> None:
        self.content_set_event = Event()
        self.expectation_registered_event = Event()
        self.entering_event = Event()
        self.leaving_event = Event()
        self.failed_event = Event()
        self.retrying_event = Event()
        self.recursive_event = Event()
        self.set_content(content)

    @property
    def content(self) -> str:
        return self._content

    def set_content(self, content: str) -> None:
        """
        Replace the content, resetting the parsing state and the expectation
        frame.
        """
        logger.debug("Parsing context content set (%d code points)", len(content))
        self._content = content
        self._state = self.create_initial_state()
        self._expectation_frame = ExpectationFrame()
        self.content_set_event.fire(content)

    def create_initial_state(self) -> StateT:
        """
        Create the state installed by :py:meth:`set_content`. Override to use
        a :py:class:`.ParsingState` subclass.
        """
        return cast(StateT, ParsingState())

    @property
    def state(self) -> StateT:
        """The current state. Mutate via the consumption primitives only."""
        return self._state

    def _install_state(self, state: StateT) -> None:
        self._state = state

    def peek(self) -> str:
        """Return the next code point of the input without consuming it."""
        if not self.has_next():
            raise NoMatch()
        return self._content[self._state.index]

    def next(self) -> str:
        """Return the next code point of the input and consume it."""
        if not self.has_next():
            raise NoMatch()
        result = self._content[self._state.index]
        self._state.index += len(result)
        return result

    def has_next(self) -> bool:
        """True if there are more code points in the input."""
        return self._state.index < len(self._content)

    @property
    def index(self) -> int:
        """The current input position."""
        return self._state.index

    def get_index(self) -> int:
        return self._state.index

    def snapshot(self) -> "StateSnapshot[StateT]":
        """Capture the current state."""
        return StateSnapshot(self, self._state)

    def register_expectation(self, expectation: str, index: Optional[int] = None) -> None:
        """
        Register an expectation with the current :py:class:`.ExpectationFrame`
        at the supplied index (default: the current index).
        """
        if index is None:
            index = self._state.index
        self._expectation_frame.register_expectation(index, expectation)
        self.expectation_registered_event.fire(Expectation(index, expectation))

    def get_error_description(self) -> ErrorDescription:
        """
        Describe the furthest failure recorded in the current expectation
        frame.
        """
        return ErrorDescription.from_content(
            self._content,
            self._expectation_frame.index,
            self._expectation_frame.expectations,
        )

    @property
    def expectation_frame(self) -> ExpectationFrame:
        return self._expectation_frame

    @expectation_frame.setter
    def expectation_frame(self, expectation_frame: ExpectationFrame) -> None:
        self._expectation_frame = expectation_frame

    def get_expectation_frame(self) -> ExpectationFrame:
        return self._expectation_frame

    def set_expectation_frame(self, expectation_frame: ExpectationFrame) -> None:
        self._expectation_frame = expectation_frame

    def set_new_expectation_frame(self) -> ExpectationFrame:
        """Install and return a fresh, empty expectation frame."""
        self._expectation_frame = ExpectationFrame()
        return self._expectation_frame

    # Rule invocation hooks. Each fires a copy of the info stamped with the
    # current index.

    def entering(self, info: "RuleInvocationInfo") -> None:
        self.entering_event.fire(replace(info, index=self._state.index))

    def leaving(self, info: "RuleInvocationInfo") -> None:
        self.leaving_event.fire(replace(info, index=self._state.index))

    def failed(self, info: "RuleInvocationInfo") -> None:
        self.failed_event.fire(replace(info, index=self._state.index))

    def retrying(self, info: "RuleInvocationInfo") -> None:
        self.retrying_event.fire(replace(info, index=self._state.index))

    def recursive(self, info: "RuleInvocationInfo") -> None:
        self.recursive_event.fire(replace(info, index=self._state.index))
