"""Tests for the compensated persistence steps."""

from combinators import lift as L

from shopsync.orders import _saga as S
from _support import err, ok


def succeed(value, log):
    async def action():
        log.append(f"do {value}")
        return value

    return L.catching_async(action, on_error=str)


def fail(message, log):
    async def action():
        log.append(f"fail {message}")
        raise RuntimeError(message)

    return L.catching_async(action, on_error=str)


def undo(log):
    async def compensate(value):
        log.append(f"undo {value}")

    return compensate


class TestRunChain:
    async def test_success_records_compensators(self):
        log = []
        chain = S.step("a", succeed("a", log), undo(log)).then(
            lambda v: S.step("b", succeed(v + "b", log), undo(log))
        )
        result = ok(await S.run_chain(chain))

        assert result.value == "ab"
        assert result.steps_executed == 2
        assert result.compensators_recorded == 2
        assert log == ["do a", "do ab"]

    async def test_failure_compensates_in_reverse(self):
        log = []
        chain = S.step("a", succeed("a", log), undo(log)).then(
            lambda v: S.step("b", fail("boom", log))
        )
        e = err(await S.run_chain(chain))

        assert e.error == "boom"
        assert e.step_failed == "b"
        assert e.compensators_run == 1
        assert e.rollback_complete
        assert log == ["do a", "fail boom", "undo a"]

    async def test_failing_compensator_is_counted(self):
        log = []

        async def broken(_):
            raise RuntimeError("cannot undo")

        chain = S.step("a", succeed("a", log), broken).then(
            lambda v: S.step("b", fail("boom", log))
        )
        e = err(await S.run_chain(chain))

        assert e.compensators_failed == 1
        assert not e.rollback_complete

    async def test_first_step_failure(self):
        log = []
        chain = S.step("a", fail("nope", log), undo(log)).then(
            lambda v: S.step("b", succeed("b", log))
        )
        e = err(await S.run_chain(chain))

        assert e.step_failed == "a"
        assert log == ["fail nope"]


class TestRun:
    async def test_single_step(self):
        log = []
        assert ok(await S.run(S.step("a", succeed("a", log)))).value == "a"
