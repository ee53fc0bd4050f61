from __future__ import annotations

import pytest

from stepweave import Join, MisusedContinuationError, StepMode, continuation, direct


def reports(deferred, value):
    return continuation(lambda done: deferred.later(done, value))


class TestJoin:
    def test_results_follow_registration_order(self, deferred, collect, collected):
        join = Join(reports(deferred, "a"), reports(deferred, "b"), reports(deferred, "c"))

        join(collect)
        deferred.run_all_reversed()

        assert collected == [("a", "b", "c")]

    @pytest.mark.parametrize("order", [(0, 1, 2), (2, 0, 1), (1, 2, 0), (2, 1, 0)])
    def test_completion_fires_once_after_all_report(self, deferred, collect, collected, order):
        join = Join(reports(deferred, 1), reports(deferred, 2), reports(deferred, 3))
        join(collect)
        pending = list(deferred.pending)

        for position, index in enumerate(order):
            fn, args = pending[index]
            fn(*args)
            if position < 2:
                assert collected == []

        assert collected == [(1, 2, 3)]

    def test_all_steps_start_before_any_completes(self, deferred, calls, collect):
        def step(name):
            def start(done):
                calls.record(name)
                deferred.later(done, name)

            return continuation(start)

        Join(step("a"), step("b"))(collect)

        assert calls.names() == ["a", "b"]
        assert len(deferred.pending) == 2

    def test_empty_join_completes_immediately(self, collect, collected):
        Join()(collect)

        assert collected == [()]

    def test_multi_value_and_empty_reports(self, collect, collected):
        join = Join(
            continuation(lambda done: done(1, 2)),
            continuation(lambda done: done()),
            continuation(lambda done: done("x")),
        )

        join(collect)

        assert collected == [((1, 2), None, "x")]

    def test_leading_arguments_go_to_every_step(self, collect, collected):
        join = Join(
            continuation(lambda x, done: done(x + 1)),
            continuation(lambda scale, x, done: done(x * scale), 10),
        )

        join(4, collect)

        assert collected == [(5, 40)]

    def test_each_invocation_gets_fresh_slots(self, deferred, collect, collected):
        join = Join(reports(deferred, "only"))

        join(collect)
        join(collect)
        deferred.run_all()

        assert collected == [("only",), ("only",)]

    def test_step_reporting_twice_is_detected(self, collect, collected):
        join = Join(
            continuation(lambda done: (done(1), done(1))),
            continuation(lambda done: None),
        )

        with pytest.raises(MisusedContinuationError):
            join(collect)

        assert collected == []

    def test_step_that_never_reports_stalls(self, collect, collected):
        Join(continuation(lambda done: done(1)), continuation(lambda done: None))(collect)

        assert collected == []

    def test_direct_steps_are_rejected(self):
        with pytest.raises(MisusedContinuationError, match="Join step 1"):
            Join(continuation(lambda done: done()), direct(abs))

    def test_completion_is_required(self):
        with pytest.raises(MisusedContinuationError):
            Join(continuation(lambda done: done()))()

    def test_join_is_continuation_based(self):
        join = Join()

        assert join.mode is StepMode.CONTINUATION
        assert len(join) == 0
