"""Join: start a fixed set of continuation-based steps and fan their results in."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from stepweave.continuation import Continuation
from stepweave.errors import MisusedContinuationError
from stepweave.step import Composite, StepMode, StepSpec, as_spec

logger = logging.getLogger(__name__)

_UNSET = object()


def _slot_value(results: tuple[Any, ...]) -> Any:
    if not results:
        return None
    if len(results) == 1:
        return results[0]
    return results


class _JoinRun:
    """Slots and counter for one join invocation."""

    def __init__(self, size: int, completion: Continuation) -> None:
        self.slots: list[Any] = [_UNSET] * size
        self.remaining = size
        self.completion = completion

    def collector(self, index: int) -> Callable[..., None]:
        def collect(*results: Any) -> None:
            self.slots[index] = _slot_value(results)
            self.remaining -= 1
            logger.debug("Join slot %d filled, %d remaining", index, self.remaining)
            if self.remaining == 0:
                self.completion(*self.slots)

        return collect


class Join(Composite):
    """Runs continuation-based steps without waiting on each other.

    The completion is called once, after every step reported, with one value
    per step in registration order: the value a step reported, a tuple if it
    reported several, ``None`` if it reported nothing. Leading call arguments
    are passed to every step.
    """

    def __init__(self, *specs: StepSpec | Composite) -> None:
        normalized = tuple(as_spec(spec, role="Join step") for spec in specs)
        for index, spec in enumerate(normalized):
            if spec.mode is not StepMode.CONTINUATION:
                raise MisusedContinuationError(
                    f"Join step {index} ({spec.describe()}) must be continuation-based"
                )
        self._specs = normalized

    @property
    def specs(self) -> tuple[StepSpec, ...]:
        return self._specs

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def mode(self) -> StepMode:
        return StepMode.CONTINUATION

    def _run(self, call_args: tuple[Any, ...], completion: Continuation | None) -> Any:
        if completion is None:
            raise MisusedContinuationError("Join must be invoked with a completion")
        if not self._specs:
            completion()
            return None

        run = _JoinRun(len(self._specs), completion)
        for index, spec in enumerate(self._specs):
            spec.apply(call_args, run.collector(index))
        return None

    def __repr__(self) -> str:
        return f"Join({', '.join(spec.label or '?' for spec in self._specs)})"


__all__ = ["Join"]
