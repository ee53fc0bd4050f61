"""
Conditional loop: alternate a predicate step and a body step.

Two argument channels are threaded across iterations: ``to_predicate`` feeds
the predicate and ``to_body`` feeds the body. The body returns the next pair
as a :class:`LoopState`.

Every invocation runs its own :class:`_LoopRun` state machine
(``INIT -> AWAIT_PREDICATE <-> AWAIT_BODY -> DONE``). Completions only queue
an event; a single driver loop consumes the queue and dispatches on the
current phase. Direct steps therefore iterate without recursion, and
continuation-based steps that complete synchronously do not deepen the stack
either. When a continuation fires later, from outside the driver, the driver
restarts from that call.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from stepweave.continuation import Continuation
from stepweave.errors import MisusedContinuationError
from stepweave.step import Composite, StepMode, StepSpec, as_spec, direct

logger = logging.getLogger(__name__)


def _as_args(value: Any, channel: str) -> tuple[Any, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError(
            f"LoopState.{channel} must be a sequence of arguments (type={type(value).__name__})"
        )
    return tuple(value)


@dataclass(frozen=True)
class LoopState:
    """Arguments for the next predicate check and the next body run."""

    to_predicate: tuple[Any, ...] = ()
    to_body: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "to_predicate", _as_args(self.to_predicate, "to_predicate"))
        object.__setattr__(self, "to_body", _as_args(self.to_body, "to_body"))

    @classmethod
    def coerce(cls, value: Any) -> LoopState:
        if isinstance(value, LoopState):
            return value
        if isinstance(value, Mapping):
            return cls(
                to_predicate=value.get("to_predicate", ()),
                to_body=value.get("to_body", ()),
            )
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(to_predicate=value[0], to_body=value[1])
        raise TypeError(
            "Loop body must produce a LoopState, a (to_predicate, to_body) pair "
            f"or a mapping with those keys (got {type(value).__name__})"
        )


class LoopPhase(Enum):
    INIT = "init"
    AWAIT_PREDICATE = "await_predicate"
    AWAIT_BODY = "await_body"
    DONE = "done"


def _never(*_args: Any) -> bool:
    return False


def _noop(*_args: Any) -> LoopState:
    return LoopState()


class _LoopRun:
    """State machine for one loop invocation; never reused."""

    def __init__(
        self,
        predicate: StepSpec,
        body: StepSpec,
        state: LoopState,
        completion: Continuation | None,
    ) -> None:
        self.predicate = predicate
        self.body = body
        self.state = state
        self.completion = completion
        self.phase = LoopPhase.INIT
        self.iterations = 0
        self._events: deque[tuple[LoopPhase, Any]] = deque()
        self._driving = False

    def start(self) -> None:
        self._post(LoopPhase.INIT, None)

    def _post(self, phase: LoopPhase, payload: Any) -> None:
        self._events.append((phase, payload))
        if not self._driving:
            self._drive()

    def _drive(self) -> None:
        self._driving = True
        try:
            while self._events:
                phase, payload = self._events.popleft()
                self._dispatch(phase, payload)
        finally:
            self._driving = False

    def _dispatch(self, phase: LoopPhase, payload: Any) -> None:
        if phase is not self.phase:
            raise MisusedContinuationError(
                f"Loop received a {phase.value} event while in phase {self.phase.value}"
            )

        if phase is LoopPhase.INIT:
            self._check_predicate()
            return

        if phase is LoopPhase.AWAIT_PREDICATE:
            if payload:
                self.phase = LoopPhase.AWAIT_BODY
                self.body.apply(self.state.to_body, self._on_body, bare=True)
                return
            self.phase = LoopPhase.DONE
            logger.debug("Loop finished after %d iteration(s)", self.iterations)
            if self.completion is not None:
                self.completion(self.state)
            return

        if phase is LoopPhase.AWAIT_BODY:
            self.state = payload
            self.iterations += 1
            self._check_predicate()
            return

        raise MisusedContinuationError("Loop received an event after it finished")

    def _check_predicate(self) -> None:
        self.phase = LoopPhase.AWAIT_PREDICATE
        self.predicate.apply(self.state.to_predicate, self._on_predicate, bare=True)

    def _on_predicate(self, proceed: Any = False, *_extra: Any) -> None:
        self._post(LoopPhase.AWAIT_PREDICATE, bool(proceed))

    def _on_body(self, *results: Any) -> None:
        if len(results) == 1:
            next_state = LoopState.coerce(results[0])
        elif len(results) == 2:
            next_state = LoopState(to_predicate=results[0], to_body=results[1])
        else:
            raise TypeError(
                f"Loop body completed with {len(results)} values; expected a LoopState "
                "or (to_predicate, to_body)"
            )
        self._post(LoopPhase.AWAIT_BODY, next_state)


class Loop(Composite):
    """Repeats ``body`` while ``predicate`` holds.

    Preset positional arguments only seed the first iteration:
    ``to_body = body presets + call args`` and
    ``to_predicate = predicate presets``. Afterwards the body's returned
    :class:`LoopState` is all either step sees.

    A direct/direct loop returns the final :class:`LoopState`. If either step
    is continuation-based the loop is too, and its completion receives the
    final state once the predicate declines.
    """

    def __init__(
        self,
        predicate: StepSpec | Composite | None = None,
        body: StepSpec | Composite | None = None,
    ) -> None:
        self._predicate = self._predicate_spec(predicate)
        self._body = self._body_spec(body)

    @staticmethod
    def _body_spec(body: StepSpec | Composite | None) -> StepSpec:
        if body is None:
            return direct(_noop)
        return as_spec(body, role="Loop body")

    @staticmethod
    def _predicate_spec(predicate: StepSpec | Composite | None) -> StepSpec:
        if predicate is None:
            return direct(_never)
        return as_spec(predicate, role="Loop predicate")

    @property
    def body(self) -> StepSpec:
        return self._body

    @property
    def predicate(self) -> StepSpec:
        return self._predicate

    def set_body(self, body: StepSpec | Composite | None) -> Loop:
        self._body = self._body_spec(body)
        return self

    def set_predicate(self, predicate: StepSpec | Composite | None) -> Loop:
        self._predicate = self._predicate_spec(predicate)
        return self

    @property
    def mode(self) -> StepMode:
        if self._body.is_direct and self._predicate.is_direct:
            return StepMode.DIRECT
        return StepMode.CONTINUATION

    def _run(self, call_args: tuple[Any, ...], completion: Continuation | None) -> Any:
        seed = LoopState(
            to_predicate=self._predicate.preset_args,
            to_body=(*self._body.preset_args, *call_args),
        )
        run = _LoopRun(self._predicate, self._body, seed, completion)
        logger.debug(
            "Loop starts (predicate=%s, body=%s)",
            self._predicate.describe(),
            self._body.describe(),
        )
        run.start()
        if completion is None:
            return run.state
        return None

    def __repr__(self) -> str:
        return f"Loop(predicate={self._predicate.label}, body={self._body.label})"


__all__ = ["Loop", "LoopPhase", "LoopState"]
