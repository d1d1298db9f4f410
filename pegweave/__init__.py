r"""
Pegweave is the runtime core of a Parsing Expression Grammar (PEG) [PEG]_
parser. Grammars are written directly in Python as methods of a
:py:class:`.Parser` subclass; the library supplies the parsing context
(input, position, backtracking and error reporting), the standard PEG
combinators and a set of hooks fired around every rule invocation.

Basic usage
===========

A grammar for sums of numbers such as ``1+20+300``::

    >>> from pegweave import Parser, rule

    >>> class Sums(Parser):
    ...     @rule
    ...     def sum(self):
    ...         total = self.number()
    ...         for value in self.zero_or_more(self.plus_number):
    ...             total += value
    ...         self.eoi()
    ...         return total
    ...
    ...     @rule
    ...     def plus_number(self):
    ...         self.string("+")
    ...         return self.number()
    ...
    ...     @rule
    ...     def number(self):
    ...         return int("".join(self.one_or_more(lambda: self.char_range("0", "9"))))

    >>> parser = Sums("1+20+300")
    >>> parser.parse(parser.sum)
    321

Rule bodies consume input via the primitives of the :py:class:`.ParsingContext`
(:py:meth:`~.ParsingContext.peek`, :py:meth:`~.ParsingContext.next`) or via
the terminals and combinators of :py:class:`.Parser`, and may call other
rules. When the input does not match, a rule raises :py:exc:`.NoMatch` and
the nearest enclosing combinator backtracks.

Error reporting
===============

During parsing, failing terminals register what they expected. Only the
expectations at the furthest position reached are kept (see
:py:class:`.ExpectationFrame`) since these describe the most specific
failure. When the start rule fails, :py:meth:`.Parser.parse` raises a
:py:exc:`.ParseError`::

    >>> parser = Sums("1+2+x")
    >>> parser.parse(parser.sum)
    Traceback (most recent call last):
    ...
    pegweave.parser.ParseError: Error on line 1. Expected: 0-9
    1+2+x
        ^

Backtracking
============

The state of a context is captured by :py:meth:`.ParsingContext.snapshot`.
:py:meth:`.StateSnapshot.restore` reinstates it once;
:py:meth:`.StateSnapshot.restore_clone` may be used repeatedly.

Rule hooks
==========

The :py:func:`.rule` decorator wraps each rule so that the context's
``entering``, ``leaving``, ``failed``, ``retrying`` and ``recursive`` events
are fired around it. These are used by :py:class:`.RuleTracer` and may be
subscribed to directly. Left recursion is detected via the ``recursive``
hook and handled according to a :py:class:`.LeftRecursionPolicy`.

.. [PEG] Ford, Bryan. "Parsing expression grammars: a recognition-based
   syntactic foundation." POPL 2004.
"""


from pegweave.version import __version__

from pegweave.state import *
from pegweave.events import *
from pegweave.expectations import *
from pegweave.error_message_generation import *
from pegweave.context import *
from pegweave.rules import *
from pegweave.parser import *
from pegweave.tracing import *

# NB: These names are explicitly re-exported here because mypy in strict mode
# does not allow implicit re-exports. The completeness of this list is tested
# by the test suite.
__all__ = [  # noqa: F405
    # state.*
    "ParsingState",
    "StateSnapshot",
    "SnapshotAlreadyRestoredError",
    # events.*
    "Event",
    # expectations.*
    "ExpectationFrame",
    "Expectation",
    # error_message_generation.*
    "line_info",
    "ErrorDescription",
    # context.*
    "NoMatch",
    "ParsingContext",
    # rules.*
    "RuleInvocationInfo",
    "LeftRecursionPolicy",
    "GrammarError",
    "LeftRecursionError",
    "InvocationTracker",
    "RuleInterceptor",
    "rule",
    # parser.*
    "RepeatedEmptyTermError",
    "ParseError",
    "Parser",
    # tracing.*
    "TraceRecord",
    "RuleTracer",
]
