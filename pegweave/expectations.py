"""
Furthest-failure tracking for error reporting.

Because a PEG parser tries alternatives in order and discards those which
fail, the only failures worth reporting are those which got furthest into
the input. An :py:class:`ExpectationFrame` records that furthest position
along with every expectation which was registered there.
"""

from dataclasses import dataclass, field

from typing import Set


__all__ = [
    "ExpectationFrame",
    "Expectation",
]


@dataclass
class ExpectationFrame:
    """Collects expectations at the furthest failing position."""

    index: int = 0
    """The furthest position at which an expectation was registered."""

    expectations: Set[str] = field(default_factory=set)
    """The expectations registered at :py:attr:`index`."""

    def register_expectation(self, index: int, expectation: str) -> None:
        """
        Register an expectation.

        If ``index`` lies to the right of :py:attr:`index`, the expectations
        are cleared and the index advanced. Expectations registered to the
        left of :py:attr:`index` are ignored.
        """
        if self.index < index:
            self.index = index
            self.expectations.clear()
        if self.index == index:
            self.expectations.add(expectation)

    def merge(self, other: "ExpectationFrame") -> None:
        """
        Merge another frame into this one. The frame furthest to the right
        takes precedence. When both are at the same position the
        expectations are combined.
        """
        if self.index == other.index:
            self.expectations |= other.expectations
        elif self.index < other.index:
            self.index = other.index
            self.expectations = set(other.expectations)


@dataclass(frozen=True)
class Expectation:
    """
    Payload of :py:attr:`.ParsingContext.expectation_registered_event`.
    """

    index: int
    expectation: str
