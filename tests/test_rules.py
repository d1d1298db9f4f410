import pytest  # type: ignore

from typing import Any, List, Tuple

from pegweave.context import NoMatch, ParsingContext
from pegweave.rules import (
    RuleInvocationInfo,
    LeftRecursionPolicy,
    LeftRecursionError,
    RuleInterceptor,
    rule,
)
from pegweave.parser import Parser, ParseError


def record_events(ctx: ParsingContext[Any]) -> List[Tuple[str, str, int]]:
    """Record (event, rule, index) for every rule lifecycle event."""
    events: List[Tuple[str, str, int]] = []
    for name in ["entering", "leaving", "failed", "retrying", "recursive"]:
        getattr(ctx, f"{name}_event").subscribe(
            lambda info, name=name: events.append((name, info.rule, info.index))
        )
    return events


class AB(Parser):
    @rule
    def ab(self) -> str:
        return self.a() + self.b()

    @rule
    def a(self) -> str:
        return self.string("a")

    @rule
    def b(self) -> str:
        return self.string("b")


class TestLifecycle:
    def test_success(self) -> None:
        parser = AB("ab")
        events = record_events(parser.ctx)
        assert parser.parse(parser.ab) == "ab"
        assert events == [
            ("entering", "ab", 0),
            ("entering", "a", 0),
            ("leaving", "a", 1),
            ("entering", "b", 1),
            ("leaving", "b", 2),
            ("leaving", "ab", 2),
        ]

    def test_failure(self) -> None:
        parser = AB("ax")
        events = record_events(parser.ctx)
        with pytest.raises(NoMatch):
            parser.ab()
        assert events == [
            ("entering", "ab", 0),
            ("entering", "a", 0),
            ("leaving", "a", 1),
            ("entering", "b", 1),
            ("failed", "b", 1),
            ("failed", "ab", 1),
        ]

    def test_hooks_receive_independent_copies(self) -> None:
        parser = AB("ab")
        infos: List[RuleInvocationInfo] = []
        parser.ctx.entering_event.subscribe(infos.append)
        parser.ctx.leaving_event.subscribe(infos.append)
        parser.a()
        assert infos == [RuleInvocationInfo("a", (), 0), RuleInvocationInfo("a", (), 1)]

    def test_retrying_fired_by_choice(self) -> None:
        class Choice(AB):
            @rule
            def choice(self) -> str:
                return self.first_of(self.a, self.b)

        parser = Choice("b")
        events = record_events(parser.ctx)
        assert parser.parse(parser.choice) == "b"
        assert events == [
            ("entering", "choice", 0),
            ("entering", "a", 0),
            ("failed", "a", 0),
            ("retrying", "choice", 0),
            ("entering", "b", 0),
            ("leaving", "b", 1),
            ("leaving", "choice", 1),
        ]

    def test_rule_arguments(self) -> None:
        class Args(Parser):
            @rule
            def literal(self, text: str) -> str:
                return self.string(text)

        parser = Args("xy")
        infos: List[RuleInvocationInfo] = []
        parser.ctx.leaving_event.subscribe(infos.append)
        assert parser.literal("xy") == "xy"
        assert infos == [RuleInvocationInfo("literal", ("xy",), 2)]

    def test_rule_name_override(self) -> None:
        class Named(Parser):
            @rule(name="custom")
            def body(self) -> str:
                return self.any_char()

        parser = Named("x")
        events = record_events(parser.ctx)
        parser.body()
        assert events == [("entering", "custom", 0), ("leaving", "custom", 1)]

    def test_interceptor_exposed(self) -> None:
        assert isinstance(AB.a.interceptor, RuleInterceptor)  # type: ignore
        assert AB.a.interceptor.name == "a"  # type: ignore
        assert AB.a.__name__ == "a"

    def test_invocation_stack_unwound(self) -> None:
        parser = AB("ax")
        with pytest.raises(NoMatch):
            parser.ab()
        assert parser._invocations.stack == []
        assert parser._invocations.active == {}


class Memo(Parser):
    calls: int

    def __init__(self, ctx: str) -> None:
        super().__init__(ctx)
        self.calls = 0

    @rule(memoize=True)
    def word(self) -> str:
        self.calls += 1
        return "".join(self.one_or_more(lambda: self.char_range("a", "z")))

    @rule
    def exclaim(self) -> str:
        word = self.word()
        self.string("!")
        return word

    @rule
    def question(self) -> str:
        word = self.word()
        self.string("?")
        return word

    @rule
    def start(self) -> str:
        return self.first_of(self.exclaim, self.question)


class Keywords(Parser):
    @rule(memoize=True)
    def keyword(self) -> str:
        return self.string("if")

    @rule
    def start(self) -> str:
        self.test_not(self.keyword)
        return self.keyword()


class TestMemoization:
    def test_success_replayed(self) -> None:
        parser = Memo("abc?")
        events = record_events(parser.ctx)
        assert parser.parse(parser.start) == "abc"
        assert parser.calls == 1
        assert parser.ctx.index == 4
        # The replayed invocation still fires its hooks
        assert events.count(("entering", "word", 0)) == 2
        assert events.count(("leaving", "word", 3)) == 2

    def test_failure_replayed(self) -> None:
        parser = Memo("123")
        events = record_events(parser.ctx)
        with pytest.raises(ParseError):
            parser.parse(parser.start)
        assert parser.calls == 1
        assert events.count(("failed", "word", 0)) == 2

    def test_replayed_failure_registers_expectations(self) -> None:
        parser = Keywords("xx")
        with pytest.raises(ParseError) as exc_info:
            parser.parse(parser.start)
        assert exc_info.value.description.expectations == {"if"}
        assert str(exc_info.value) == "Error on line 1. Expected: if\nxx\n^ "

    def test_replay_outside_original_frame(self) -> None:
        parser = Keywords("xx")
        outer = parser.ctx.expectation_frame
        parser.ctx.set_new_expectation_frame()
        with pytest.raises(NoMatch):
            parser.keyword()
        parser.ctx.set_expectation_frame(outer)
        assert outer.expectations == set()

        with pytest.raises(NoMatch):
            parser.keyword()
        description = parser.ctx.get_error_description()
        assert description.error_position == 0
        assert description.expectations == {"if"}

    def test_expectations_reach_outer_frame_on_first_run(self) -> None:
        parser = Keywords("ix")
        with pytest.raises(NoMatch):
            parser.keyword()
        assert parser.ctx.expectation_frame.index == 0
        assert parser.ctx.expectation_frame.expectations == {"if"}

    def test_cleared_by_content_replacement(self) -> None:
        parser = Memo("abc?")
        assert parser.parse(parser.start) == "abc"
        parser.ctx.set_content("xyz!")
        assert parser.parse(parser.start) == "xyz"
        assert parser.calls == 2


class Subtraction(Parser):
    @rule
    def expr(self) -> int:
        return self.first_of(self.minus, self.num)

    @rule
    def minus(self) -> int:
        left = self.expr()
        self.string("-")
        return left - self.num()

    @rule
    def num(self) -> int:
        return int(self.char_range("0", "9"))


class TestLeftRecursion:
    def test_fail_policy(self) -> None:
        parser = Subtraction("9-2-3")
        events = record_events(parser.ctx)
        with pytest.raises(LeftRecursionError):
            parser.parse(parser.expr)
        assert events == [
            ("entering", "expr", 0),
            ("entering", "minus", 0),
            ("entering", "expr", 0),
            ("recursive", "expr", 0),
        ]

    def test_left_recursion_error_is_not_a_parse_failure(self) -> None:
        assert not issubclass(LeftRecursionError, NoMatch)

    def test_grow_seed_is_left_associative(self) -> None:
        parser = Subtraction("9-2-3", left_recursion=LeftRecursionPolicy.grow_seed)
        assert parser.parse(parser.expr) == 4
        assert parser.ctx.index == 5

    def test_grow_seed_partial_match(self) -> None:
        parser = Subtraction("9-2-", left_recursion=LeftRecursionPolicy.grow_seed)
        assert parser.parse(parser.expr) == 7
        assert parser.ctx.index == 3

    def test_grow_seed_no_match(self) -> None:
        parser = Subtraction("x", left_recursion=LeftRecursionPolicy.grow_seed)
        with pytest.raises(ParseError) as exc_info:
            parser.parse(parser.expr)
        assert exc_info.value.description.expectations == {"0-9"}

    def test_grow_seed_events(self) -> None:
        parser = Subtraction("9-2", left_recursion=LeftRecursionPolicy.grow_seed)
        events = record_events(parser.ctx)
        assert parser.parse(parser.expr) == 7
        assert events[:4] == [
            ("entering", "expr", 0),
            ("entering", "minus", 0),
            ("entering", "expr", 0),
            ("recursive", "expr", 0),
        ]
        assert ("retrying", "expr", 0) in events
        assert events[-1] == ("leaving", "expr", 3)

    def test_per_rule_policy(self) -> None:
        class PerRule(Subtraction):
            @rule(left_recursion=LeftRecursionPolicy.grow_seed)
            def expr(self) -> int:
                return self.first_of(self.minus, self.num)

        parser = PerRule("8-1-1")
        assert parser.left_recursion is LeftRecursionPolicy.fail
        assert parser.parse(parser.expr) == 6

    def test_indirect_left_recursion_detected(self) -> None:
        class Indirect(Parser):
            @rule
            def a(self) -> str:
                return self.b()

            @rule
            def b(self) -> str:
                return self.first_of(self.a, lambda: self.string("x"))

        parser = Indirect("x")
        with pytest.raises(LeftRecursionError):
            parser.parse(parser.a)

    def test_recursion_after_consumption_is_not_left_recursion(self) -> None:
        class Nested(Parser):
            @rule
            def nested(self) -> int:
                return self.first_of(self.parenthesised, lambda: 0)

            @rule
            def parenthesised(self) -> int:
                self.string("(")
                depth = self.nested()
                self.string(")")
                return depth + 1

        parser = Nested("((()))")
        events = record_events(parser.ctx)
        assert parser.parse(parser.nested) == 3
        assert all(event != "recursive" for event, _r, _i in events)

    def test_overriding_rule_may_call_parent(self) -> None:
        class Base(Parser):
            @rule
            def atom(self) -> str:
                return self.string("a")

        class Extended(Base):
            @rule
            def atom(self) -> str:
                parent = super().atom
                return self.first_of(lambda: self.string("b"), parent)

        parser = Extended("a")
        events = record_events(parser.ctx)
        assert parser.parse(parser.atom) == "a"
        assert events == [
            ("entering", "atom", 0),
            ("retrying", "atom", 0),
            ("entering", "atom", 0),
            ("leaving", "atom", 1),
            ("leaving", "atom", 1),
        ]
