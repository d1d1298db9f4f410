"""
Tracing of rule invocations via the events of a :py:class:`.ParsingContext`.
"""

import logging

from types import TracebackType

from typing import Callable, List, NamedTuple, Optional, Tuple, Type, Any

from pegweave.context import ParsingContext
from pegweave.events import Event
from pegweave.expectations import Expectation
from pegweave.rules import RuleInvocationInfo


__all__ = [
    "TraceRecord",
    "RuleTracer",
]


class TraceRecord(NamedTuple):
    """One traced event."""

    event: str
    """One of entering, leaving, failed, retrying, recursive or expected."""

    rule: str
    """The rule name, or the expectation for ``expected`` records."""

    index: int
    depth: int


class RuleTracer:
    """
    Records and logs the rule lifecycle events of a context. Entries are
    indented by rule nesting depth.

    Parameters
    ----------
    ctx : :py:class:`.ParsingContext`
    logger : :py:class:`logging.Logger` or None
        Where to log records. Default = the ``pegweave.tracing`` logger.
    level : int
        The level records are logged at. Default = DEBUG.
    """

    records: List[TraceRecord]

    def __init__(
        self,
        ctx: ParsingContext[Any],
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
    ) -> None:
        self.ctx = ctx
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.level = level
        self.records = []
        self._depth = 0
        self._subscriptions: List[Tuple[Event[Any], Callable[[Any], None]]] = [
            (ctx.content_set_event, self._on_content_set),
            (ctx.expectation_registered_event, self._on_expectation),
            (ctx.entering_event, self._on_entering),
            (ctx.leaving_event, self._on_leaving),
            (ctx.failed_event, self._on_failed),
            (ctx.retrying_event, self._on_retrying),
            (ctx.recursive_event, self._on_recursive),
        ]
        self._attached = False

    def attach(self) -> "RuleTracer":
        """
        Subscribe to the context's events. Nesting depth restarts at zero
        since an exception other than :py:exc:`.NoMatch` (e.g.
        :py:exc:`.LeftRecursionError`) unwinds rules without firing their
        ``leaving`` or ``failed`` hooks.
        """
        if not self._attached:
            self._depth = 0
            for event, callback in self._subscriptions:
                event.subscribe(callback)
            self._attached = True
        return self

    def detach(self) -> None:
        if self._attached:
            for event, callback in self._subscriptions:
                event.unsubscribe(callback)
            self._attached = False

    def __enter__(self) -> "RuleTracer":
        return self.attach()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.detach()

    def _record(self, event: str, rule: str, index: int) -> None:
        record = TraceRecord(event, rule, index, self._depth)
        self.records.append(record)
        self.logger.log(
            self.level, "%s%s %s at %d", "  " * record.depth, event, rule, index
        )

    def _on_content_set(self, content: str) -> None:
        self._depth = 0

    def _on_expectation(self, expectation: Expectation) -> None:
        self._record("expected", expectation.expectation, expectation.index)

    def _on_entering(self, info: RuleInvocationInfo) -> None:
        self._record("entering", info.rule, info.index)
        self._depth += 1

    def _on_leaving(self, info: RuleInvocationInfo) -> None:
        self._depth -= 1
        self._record("leaving", info.rule, info.index)

    def _on_failed(self, info: RuleInvocationInfo) -> None:
        self._depth -= 1
        self._record("failed", info.rule, info.index)

    def _on_retrying(self, info: RuleInvocationInfo) -> None:
        self._record("retrying", info.rule, info.index)

    def _on_recursive(self, info: RuleInvocationInfo) -> None:
        self._record("recursive", info.rule, info.index)
