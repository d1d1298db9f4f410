"""
Rule invocation instrumentation.

Every grammar rule invocation is wrapped by a :py:class:`RuleInterceptor`
which fires the rule lifecycle hooks of the :py:class:`.ParsingContext`:

* ``entering`` when the rule is invoked, before its body consumes anything.
* ``leaving`` when the rule completes successfully.
* ``failed`` when the rule raises :py:exc:`.NoMatch`.
* ``recursive`` (after ``entering``) when the rule is re-entered at the same
  index while already active, i.e. on left recursion.
* ``retrying`` is fired by combinators (and by seed growth, below) when a
  rule is re-attempted after restoring a snapshot.

Interceptors are composed around rule methods at class definition time by
the :py:func:`rule` decorator, so grammar authors need not write any
boilerplate in the rule bodies themselves.

What happens on left recursion is governed by a
:py:class:`LeftRecursionPolicy`. Under :py:attr:`LeftRecursionPolicy.fail`
a :py:exc:`LeftRecursionError` is raised. Under
:py:attr:`LeftRecursionPolicy.grow_seed` the reentrant invocation returns the
current "seed" (initially a failure) and the rule body is re-evaluated for
as long as each evaluation consumes more input than the last, allowing
left-recursive rules such as ``sum <- sum "+" num / num``.
"""

import functools
import logging

from enum import Enum

from dataclasses import dataclass, field

from typing import (
    Any,
    Callable,
    Dict,
    List,
    NamedTuple,
    Optional,
    Tuple,
    TypeVar,
    TYPE_CHECKING,
)

from pegweave.context import NoMatch
from pegweave.state import StateSnapshot
from pegweave.expectations import ExpectationFrame

if TYPE_CHECKING:
    from pegweave.parser import Parser


__all__ = [
    "RuleInvocationInfo",
    "LeftRecursionPolicy",
    "GrammarError",
    "LeftRecursionError",
    "InvocationTracker",
    "RuleInterceptor",
    "rule",
]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleInvocationInfo:
    """
    Identifies a rule invocation. Passed to the rule lifecycle hooks which
    stamp a copy with the context's index at the moment the hook fires.
    """

    rule: str
    """The name of the invoked rule."""

    args: Tuple[Any, ...] = ()
    """The arguments the rule was invoked with."""

    index: int = 0
    """The context index when the hook fired."""


class LeftRecursionPolicy(Enum):
    """What to do when a rule is re-entered at the same position."""

    fail = "fail"
    grow_seed = "grow_seed"


class GrammarError(Exception):
    """Thrown when a problem is encountered with the grammar during parsing."""


class LeftRecursionError(GrammarError):
    """
    Thrown when a rule is left-recursive and the
    :py:attr:`LeftRecursionPolicy.fail` policy is in effect.
    """


InvocationKey = Tuple["RuleInterceptor", Tuple[Any, ...], int]


class _Seed(NamedTuple):
    value: Any
    end: StateSnapshot[Any]


@dataclass
class _ActiveInvocation:
    left_recursive: bool = False
    """Set when the invocation has been re-entered."""

    seed: Optional[_Seed] = None
    """The current seed, None while the seed is a failure."""


class _MemoEntry(NamedTuple):
    matched: bool
    value: Any
    end: StateSnapshot[Any]
    expectations: ExpectationFrame
    """The expectations registered while computing the entry."""


@dataclass
class InvocationTracker:
    """Per-parser bookkeeping of rule invocations."""

    active: Dict[InvocationKey, _ActiveInvocation] = field(default_factory=dict)
    """The invocations currently executing."""

    memo: Dict[InvocationKey, _MemoEntry] = field(default_factory=dict)
    """Packrat cache of memoised rule results."""

    stack: List[RuleInvocationInfo] = field(default_factory=list)
    """Executing invocations, innermost last."""

    def clear(self) -> None:
        self.active.clear()
        self.memo.clear()
        self.stack.clear()

    def in_left_recursion(self) -> bool:
        """True while any active invocation has been re-entered."""
        return any(active.left_recursive for active in self.active.values())


class RuleInterceptor:
    """
    Wraps a rule body with the rule lifecycle hooks.

    Parameters
    ----------
    body : callable
        The rule body, called with the parser and the rule arguments.
    name : str
        The rule name reported to the hooks.
    memoize : bool
        If True, results are cached per (arguments, index) and replayed on
        subsequent invocations. A replay registers the expectations recorded
        when the result was computed with the current expectation frame.
    left_recursion : :py:class:`LeftRecursionPolicy` or None
        Overrides the parser's policy for this rule.
    """

    def __init__(
        self,
        body: Callable[..., Any],
        name: str,
        memoize: bool = False,
        left_recursion: Optional[LeftRecursionPolicy] = None,
    ) -> None:
        self.body = body
        self.name = name
        self.memoize = memoize
        self.left_recursion = left_recursion

    def __call__(self, parser: "Parser", args: Tuple[Any, ...]) -> Any:
        ctx = parser.ctx
        tracker = parser._invocations
        info = RuleInvocationInfo(self.name, args)
        key = (self, args, ctx.index)

        ctx.entering(info)

        active = tracker.active.get(key)
        if active is not None:
            return self._reenter(parser, info, active)

        if self.memoize and key in tracker.memo:
            entry = tracker.memo[key]
            entry.end.restore_clone()
            for expectation in sorted(entry.expectations.expectations):
                ctx.register_expectation(expectation, entry.expectations.index)
            if entry.matched:
                ctx.leaving(info)
                return entry.value
            ctx.failed(info)
            raise NoMatch()

        start = ctx.snapshot()
        active = _ActiveInvocation()
        tracker.active[key] = active
        tracker.stack.append(info)

        # Memoised rules collect their expectations in a frame of their own so
        # that replays can register them with whichever frame is then current
        outer_frame = ctx.expectation_frame
        frame = ctx.set_new_expectation_frame() if self.memoize else outer_frame
        try:
            value = self.body(parser, *args)
            if active.left_recursive:
                value = self._grow_seed(parser, info, active, start, value)
            matched = True
        except NoMatch:
            value = None
            matched = False
        finally:
            tracker.stack.pop()
            tracker.active.pop(key, None)
            if frame is not outer_frame:
                ctx.expectation_frame = outer_frame
                outer_frame.merge(frame)

        if self.memoize and not tracker.in_left_recursion():
            end = ctx.snapshot() if matched else start
            tracker.memo[key] = _MemoEntry(matched, value, end, frame)

        if matched:
            ctx.leaving(info)
            return value
        ctx.failed(info)
        raise NoMatch()

    def _reenter(
        self, parser: "Parser", info: RuleInvocationInfo, active: _ActiveInvocation
    ) -> Any:
        ctx = parser.ctx
        ctx.recursive(info)

        policy = self.left_recursion or parser.left_recursion
        if policy is LeftRecursionPolicy.fail:
            raise LeftRecursionError(
                f"rule {self.name!r} is left-recursive at index {ctx.index}"
            )

        if not active.left_recursive:
            logger.debug(
                "Left recursion detected in rule %r at index %d", self.name, ctx.index
            )
        active.left_recursive = True

        if active.seed is None:
            ctx.failed(info)
            raise NoMatch()
        active.seed.end.restore_clone()
        ctx.leaving(info)
        return active.seed.value

    def _grow_seed(
        self,
        parser: "Parser",
        info: RuleInvocationInfo,
        active: _ActiveInvocation,
        start: StateSnapshot[Any],
        value: Any,
    ) -> Any:
        """
        Re-evaluate a left-recursive rule body until it stops consuming more
        input than the previous evaluation. Returns the value of the longest
        evaluation and leaves the context at its end.
        """
        ctx = parser.ctx
        while True:
            seed = _Seed(value, ctx.snapshot())
            active.seed = seed
            logger.debug(
                "Growing seed of rule %r: %d..%d", self.name, start.index, seed.end.index
            )

            start.restore_clone()
            ctx.retrying(info)
            try:
                candidate = self.body(parser, *info.args)
            except NoMatch:
                break
            if ctx.index <= seed.end.index:
                break
            value = candidate

        seed.end.restore()
        return value


F = TypeVar("F", bound=Callable[..., Any])


def rule(
    body: Optional[F] = None,
    *,
    name: Optional[str] = None,
    memoize: bool = False,
    left_recursion: Optional[LeftRecursionPolicy] = None,
) -> Any:
    """
    Decorator marking a :py:class:`.Parser` method as a grammar rule, wrapping
    it in a :py:class:`RuleInterceptor`.

    May be used bare (``@rule``) or with arguments
    (``@rule(memoize=True)``). Rules take positional arguments only and these
    must be hashable.
    """

    def decorate(body: F) -> F:
        interceptor = RuleInterceptor(
            body,
            name=name or body.__name__,
            memoize=memoize,
            left_recursion=left_recursion,
        )

        @functools.wraps(body)
        def invoke(parser: "Parser", *args: Any) -> Any:
            return interceptor(parser, args)

        invoke.interceptor = interceptor  # type: ignore
        return invoke  # type: ignore

    if body is None:
        return decorate
    else:
        return decorate(body)
