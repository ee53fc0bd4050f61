"""One-shot continuations handed to continuation-based steps."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

from stepweave.errors import MisusedContinuationError
from stepweave.utils import describe_callable

logger = logging.getLogger(__name__)

_continuation_id_counter = itertools.count(1)


class Continuation:
    """Single-fire wrapper around a completion callback.

    The first call forwards its arguments to the wrapped callback. Every later
    call raises :class:`MisusedContinuationError` without touching the
    callback, so downstream logic never runs twice.
    """

    __slots__ = ("_target", "_label", "_fired", "cont_id")

    def __init__(self, target: Callable[..., Any], label: str | None = None) -> None:
        if not callable(target):
            raise TypeError(
                f"Continuation target must be callable (type={type(target).__name__})"
            )
        self._target = target
        self._label = label or describe_callable(target)
        self._fired = False
        self.cont_id = next(_continuation_id_counter)

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def label(self) -> str:
        return self._label

    def __call__(self, *results: Any) -> Any:
        if self._fired:
            raise MisusedContinuationError(
                f"One-shot violation: continuation #{self.cont_id} ({self._label}) "
                "has already been invoked"
            )
        self._fired = True
        logger.debug("Continuation #%s (%s) fired with %d value(s)", self.cont_id, self._label, len(results))
        return self._target(*results)

    def __repr__(self) -> str:
        state = "fired" if self._fired else "pending"
        return f"Continuation(#{self.cont_id}, {self._label}, {state})"


def once(target: Callable[..., Any], label: str | None = None) -> Continuation:
    """Wrap ``target`` in a :class:`Continuation` unless it already is one."""

    if isinstance(target, Continuation):
        return target
    return Continuation(target, label)


__all__ = ["Continuation", "once"]
