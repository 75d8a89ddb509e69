from __future__ import annotations

import asyncio

import pytest

from lessonflow.journey import (
    LESSON_COMPLETE_MESSAGE,
    Challenge,
    Lesson,
    Outcome,
    render_evaluation,
    set_default_progression,
)
from lessonflow.kernel import (
    CommandFailed,
    ReturnValueProduced,
    StandardOutputValueProduced,
    SubmitCode,
)


def _events(code: SubmitCode, *, stdout: str = "", value=None, failed: bool = False):
    events = []
    if stdout:
        events.append(StandardOutputValueProduced(code, text=stdout))
    if value is not None:
        events.append(ReturnValueProduced(code, value=value))
    if failed:
        events.append(CommandFailed(code, message="boom"))
    return events


def test_evaluation_without_rules_passes_clean_submissions() -> None:
    challenge = Challenge("free")
    evaluation = asyncio.run(challenge.evaluate("x = 1", []))
    assert evaluation.outcome is Outcome.SUCCESS
    assert challenge.current_evaluation is evaluation
    assert challenge.submissions[0].code == "x = 1"


def test_evaluation_without_rules_fails_on_error_events() -> None:
    challenge = Challenge("free")
    command = SubmitCode("1/0")
    evaluation = asyncio.run(challenge.evaluate(command.code, _events(command, failed=True)))
    assert evaluation.outcome is Outcome.FAILURE


def test_rules_see_stdout_and_return_value() -> None:
    challenge = Challenge("output")
    challenge.add_rule(lambda ctx: ctx.stdout == "hi\n", name="prints hi")
    challenge.add_rule(lambda ctx: ctx.return_value == 3, name="returns 3")
    command = SubmitCode("print('hi')\n1 + 2")

    evaluation = asyncio.run(challenge.evaluate(command.code, _events(command, stdout="hi\n", value=3)))

    assert evaluation.passed
    assert [rule.name for rule in evaluation.rule_evaluations] == ["prints hi", "returns 3"]


def test_partial_and_failed_aggregation() -> None:
    challenge = Challenge("mixed")
    challenge.add_rule(lambda ctx: True)
    challenge.add_rule(lambda ctx: ctx.fail("missing loop", hint="Use a for loop"))

    evaluation = asyncio.run(challenge.evaluate("x = 1", []))

    assert evaluation.outcome is Outcome.PARTIAL_SUCCESS
    assert evaluation.hint == "Use a for loop"
    assert evaluation.rule_evaluations[0].name == "Rule 1"
    assert evaluation.rule_evaluations[1].name == "Rule 2"

    challenge.clear_rules()
    challenge.add_rule(lambda ctx: False)
    evaluation = asyncio.run(challenge.evaluate("x = 1", []))
    assert evaluation.outcome is Outcome.FAILURE


def test_explicit_partial_outcome() -> None:
    challenge = Challenge("partial")

    def almost(ctx) -> None:
        ctx.partial("close", hint="check the sign")

    challenge.add_rule(almost)
    evaluation = asyncio.run(challenge.evaluate("x = -1", []))
    assert evaluation.outcome is Outcome.PARTIAL_SUCCESS
    assert evaluation.rule_evaluations[0].name == "almost"


def test_async_rules_are_awaited() -> None:
    challenge = Challenge("async")

    async def check(ctx) -> bool:
        await asyncio.sleep(0)
        return "yield" in ctx.code

    challenge.add_rule(check)
    evaluation = asyncio.run(challenge.evaluate("def g():\n    yield 1", []))
    assert evaluation.passed


def test_rule_errors_propagate() -> None:
    challenge = Challenge("broken")
    challenge.add_rule(lambda ctx: 1 / 0)
    with pytest.raises(ZeroDivisionError):
        asyncio.run(challenge.evaluate("x = 1", []))
    assert challenge.current_evaluation is None


def test_is_setup_cannot_be_reversed() -> None:
    challenge = Challenge("once")
    challenge.is_setup = True
    challenge.is_setup = True
    with pytest.raises(ValueError):
        challenge.is_setup = False
    assert challenge.is_setup


def test_default_progression_advances_on_pass_only() -> None:
    lesson = Lesson("Progression")
    first, second = Challenge("first"), Challenge("second")
    for challenge in (first, second):
        challenge.lesson = lesson
    set_default_progression([first, second])
    first.add_rule(lambda ctx: "answer" in ctx.code)

    async def scenario() -> None:
        await lesson.start_challenge(first)
        await first.evaluate("nothing", [])
        assert lesson.current_challenge is first
        await first.evaluate("answer = 42", [])

    asyncio.run(scenario())
    assert lesson.current_challenge is second
    assert second.revealed
    assert first.next_challenge is second
    assert second.next_challenge is None


def test_last_challenge_sets_completion_message() -> None:
    lesson = Lesson("Progression")
    only = Challenge("only", lesson=lesson)
    set_default_progression([only])

    async def scenario():
        await lesson.start_challenge(only)
        return await only.evaluate("x = 1", [])

    evaluation = asyncio.run(scenario())
    assert evaluation.message == LESSON_COMPLETE_MESSAGE
    assert lesson.current_challenge is only


def test_custom_handler_can_jump_by_name() -> None:
    lesson = Lesson("Jump")
    start, bonus = Challenge("start", lesson=lesson), Challenge("bonus", lesson=lesson)
    lesson.set_challenge_lookup({"bonus": bonus}.get)

    @start.on_code_submitted
    async def jump(context) -> None:
        if "bonus" in context.submission.code:
            await context.start_challenge("bonus")

    async def scenario() -> None:
        await lesson.start_challenge(start)
        await start.evaluate("plain = 1", [])
        assert lesson.current_challenge is start
        await start.evaluate("bonus = 1", [])

    asyncio.run(scenario())
    assert lesson.current_challenge is bonus


def test_render_evaluation_html_and_text() -> None:
    challenge = Challenge("<Render>")
    challenge.add_rule(lambda ctx: ctx.fail("needs <b>bold</b>", hint="try harder"), name="markup")
    evaluation = asyncio.run(challenge.evaluate("x", []))
    view = render_evaluation(evaluation)

    html = view._repr_html_()
    assert "&lt;Render&gt;" in html
    assert "needs &lt;b&gt;bold&lt;/b&gt;" in html
    assert "Hint: try harder" in html
    text = str(view)
    assert text.startswith("[fail] <Render>: No rules passed.")
    assert "  [fail] markup: needs <b>bold</b>" in text
