"""
The base class for grammars: rule registration, the standard PEG
combinators and terminals.

A grammar is written as a :py:class:`Parser` subclass whose rules are
methods decorated with :py:func:`.rule`::

    >>> from pegweave import Parser, rule

    >>> class Digits(Parser):
    ...     @rule
    ...     def number(self):
    ...         digits = self.one_or_more(lambda: self.char_range("0", "9"))
    ...         return int("".join(digits))

    >>> parser = Digits("123")
    >>> parser.parse(parser.number)
    123
"""

import logging

from dataclasses import dataclass

from typing import (
    Any,
    Callable,
    List,
    NoReturn,
    Optional,
    TypeVar,
    Union,
)

from pegweave.context import NoMatch, ParsingContext
from pegweave.error_message_generation import ErrorDescription
from pegweave.rules import (
    GrammarError,
    InvocationTracker,
    LeftRecursionPolicy,
    RuleInvocationInfo,
)


__all__ = [
    "RepeatedEmptyTermError",
    "ParseError",
    "Parser",
]


logger = logging.getLogger(__name__)


T = TypeVar("T")


class RepeatedEmptyTermError(GrammarError):
    """
    Thrown when a repetition repeats a term which matches the empty string.
    """


@dataclass
class ParseError(Exception):
    """
    Thrown by :py:meth:`Parser.parse` when the start rule does not match.

    Parameters
    ----------
    description : :py:class:`.ErrorDescription`
        Describes the furthest point the parser reached and what it expected
        there.
    """

    description: ErrorDescription

    def __str__(self) -> str:
        return str(self.description)


class Parser:
    """
    A parser.

    Parameters
    ----------
    ctx : str or :py:class:`.ParsingContext`
        The input, or an existing context. Parsers sharing a context may call
        each other's rules.
    left_recursion : :py:class:`.LeftRecursionPolicy`
        What to do when a rule is left-recursive. Individual rules may
        override this via :py:func:`.rule`. Default = fail.
    """

    ctx: ParsingContext[Any]

    left_recursion: LeftRecursionPolicy

    _invocations: InvocationTracker
    """Active invocations, memo table and invocation stack of this parser."""

    def __init__(
        self,
        ctx: Union[str, ParsingContext[Any]],
        left_recursion: LeftRecursionPolicy = LeftRecursionPolicy.fail,
    ) -> None:
        if isinstance(ctx, str):
            ctx = ParsingContext(ctx)
        self.ctx = ctx
        self.left_recursion = left_recursion
        self._invocations = InvocationTracker()
        ctx.content_set_event.subscribe(self._on_content_set)

    def _on_content_set(self, content: str) -> None:
        self._invocations.clear()

    def parse(self, start: Callable[..., T], *args: Any) -> T:
        """
        Run a start rule, returning its value if successful or raising a
        :py:exc:`ParseError` if not.
        """
        try:
            return start(*args)
        except NoMatch:
            description = self.ctx.get_error_description()
            logger.debug(
                "Parse failed at index %d, expected %s",
                description.error_position,
                sorted(description.expectations),
            )
            raise ParseError(description) from None

    def _current_invocation(self) -> RuleInvocationInfo:
        if self._invocations.stack:
            return self._invocations.stack[-1]
        else:
            return RuleInvocationInfo("<top level>")

    # Combinators

    def first_of(self, *alternatives: Callable[[], T]) -> T:
        """
        Ordered choice: return the value of the first alternative which
        matches. Fails if none do.
        """
        snapshot = self.ctx.snapshot()
        last = len(alternatives) - 1
        for i, alternative in enumerate(alternatives):
            try:
                return alternative()
            except NoMatch:
                if i == last:
                    snapshot.restore()
                else:
                    snapshot.restore_clone()
                    self.ctx.retrying(self._current_invocation())
        raise NoMatch()

    def zero_or_more(self, term: Callable[[], T]) -> List[T]:
        """Match a term as often as possible, returning the list of values."""
        results: List[T] = []
        while True:
            if results:
                self.ctx.retrying(self._current_invocation())
            snapshot = self.ctx.snapshot()
            start_index = self.ctx.index
            try:
                results.append(term())
            except NoMatch:
                snapshot.restore()
                return results

            # Well-formedness sanity check: must not have matched the empty
            # string
            if self.ctx.index <= start_index:
                raise RepeatedEmptyTermError(
                    f"repeated term matched the empty string at index {start_index}"
                )

    def one_or_more(self, term: Callable[[], T]) -> List[T]:
        """Like :py:meth:`zero_or_more` but fails if the term never matches."""
        snapshot = self.ctx.snapshot()
        try:
            first = term()
        except NoMatch:
            snapshot.restore()
            raise
        self.ctx.retrying(self._current_invocation())
        return [first] + self.zero_or_more(term)

    def optional(self, term: Callable[[], T]) -> Optional[T]:
        """Match a term if possible, returning None if it does not match."""
        snapshot = self.ctx.snapshot()
        try:
            return term()
        except NoMatch:
            snapshot.restore()
            return None

    def test(self, term: Callable[[], Any]) -> None:
        """Positive lookahead: match the term without consuming input."""
        snapshot = self.ctx.snapshot()
        try:
            term()
        finally:
            snapshot.restore()

    def test_not(self, term: Callable[[], Any], expectation: Optional[str] = None) -> None:
        """
        Negative lookahead: match, without consuming input, only if the term
        does not match.

        Expectations registered while evaluating the term are discarded. If
        the term matches, ``expectation`` (if given) is registered instead.
        """
        snapshot = self.ctx.snapshot()
        outer_frame = self.ctx.expectation_frame
        self.ctx.set_new_expectation_frame()
        try:
            term()
        except NoMatch:
            return
        finally:
            self.ctx.expectation_frame = outer_frame
            snapshot.restore()

        if expectation is not None:
            self.ctx.register_expectation(expectation)
        raise NoMatch()

    # Terminals

    def fail(self, expectation: str) -> NoReturn:
        """Register an expectation at the current index and fail."""
        self.ctx.register_expectation(expectation)
        raise NoMatch()

    def string(self, expected: str) -> str:
        """Match a literal string."""
        start_index = self.ctx.index
        for c in expected:
            if not self.ctx.has_next() or self.ctx.peek() != c:
                self.ctx.register_expectation(expected, start_index)
                raise NoMatch()
            self.ctx.next()
        return expected

    def char(self, predicate: Callable[[str], bool], expectation: str) -> str:
        """Match a single code point accepted by the predicate."""
        if self.ctx.has_next() and predicate(self.ctx.peek()):
            return self.ctx.next()
        self.fail(expectation)

    def char_range(self, first: str, last: str) -> str:
        """Match a code point between ``first`` and ``last`` inclusive."""
        return self.char(lambda c: first <= c <= last, f"{first}-{last}")

    def one_of(self, chars: str) -> str:
        """Match any one of the supplied code points."""
        return self.char(lambda c: c in chars, f"one of {chars}")

    def none_of(self, chars: str) -> str:
        """Match any code point except those supplied."""
        return self.char(lambda c: c not in chars, f"none of {chars}")

    def any_char(self) -> str:
        return self.char(lambda c: True, "any character")

    def eoi(self) -> None:
        """Match the end of the input."""
        if self.ctx.has_next():
            self.fail("end of input")
