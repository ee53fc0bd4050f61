"""
Step convention shared by every combinator.

A step is either *direct* (returns its result) or *continuation-based*
(reports its result by calling a completion exactly once). The mode is
declared by whoever builds the :class:`StepSpec`; the runtime never inspects
a callable to guess it.

Example:
    >>> add = direct(lambda a, b: a + b, 1)
    >>> add(2)
    3
    >>> results = []
    >>> later = continuation(lambda x, done: done(x * 10))
    >>> later.apply((4,), results.append)
    >>> results
    [40]
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from frozendict import frozendict

from stepweave.continuation import Continuation, once
from stepweave.errors import MisusedContinuationError
from stepweave.utils import capture_definition_site, describe_callable

Completion = Callable[..., Any]


class StepMode(Enum):
    DIRECT = "direct"
    CONTINUATION = "continuation"

    @classmethod
    def coerce(cls, value: StepMode | str) -> StepMode:
        if isinstance(value, StepMode):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for mode in cls:
                if mode.value == normalized:
                    return mode
        raise ValueError(
            f"Step mode must be one of: direct, continuation (got {value!r})"
        )


@dataclass(frozen=True)
class StepSpec:
    """A step bundled with its mode and preset arguments.

    Attributes:
        step: The callable doing the work.
        mode: :class:`StepMode` (strings ``"direct"``/``"continuation"`` are accepted).
        preset_args: Positional arguments placed before every call's arguments.
        preset_kwargs: Keyword arguments passed on every call.
        label: Name used in log lines and error messages.
        defined_at: ``file:line`` where the spec was built (debug mode only).
    """

    step: Callable[..., Any]
    mode: StepMode = StepMode.DIRECT
    preset_args: tuple[Any, ...] = ()
    preset_kwargs: frozendict[str, Any] = field(default_factory=frozendict)
    label: str | None = None
    defined_at: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not callable(self.step):
            raise TypeError(f"Step must be callable (type={type(self.step).__name__})")
        object.__setattr__(self, "mode", StepMode.coerce(self.mode))

        if not isinstance(self.preset_args, tuple):
            if isinstance(self.preset_args, (str, bytes)):
                raise TypeError("StepSpec.preset_args must be a sequence of arguments, not a string")
            object.__setattr__(self, "preset_args", tuple(self.preset_args))
        if not isinstance(self.preset_kwargs, frozendict):
            object.__setattr__(self, "preset_kwargs", frozendict(self.preset_kwargs))

        if self.label is None:
            object.__setattr__(self, "label", describe_callable(self.step))
        elif not isinstance(self.label, str) or not self.label.strip():
            raise TypeError("StepSpec.label must be a non-empty string or None")
        if self.defined_at is None:
            object.__setattr__(self, "defined_at", capture_definition_site(skip_frames=3))

    @property
    def is_direct(self) -> bool:
        return self.mode is StepMode.DIRECT

    def describe(self) -> str:
        if self.defined_at:
            return f"{self.label} ({self.mode.value}, defined at {self.defined_at})"
        return f"{self.label} ({self.mode.value})"

    def __call__(self, *call_args: Any) -> Any:
        """Plain invocation: ``step(*preset_args, *call_args, **preset_kwargs)``.

        For a continuation-based step the caller supplies the completion as the
        last positional argument.
        """
        return self.step(*self.preset_args, *call_args, **self.preset_kwargs)

    def apply(
        self,
        call_args: tuple[Any, ...] = (),
        completion: Completion | None = None,
        *,
        bare: bool = False,
    ) -> Any:
        """Invoke the step, delivering its result to ``completion`` when given.

        A direct step returns its result when no completion is given, otherwise
        the result is passed to ``completion``. A continuation-based step
        always needs a completion and receives it wrapped in a one-shot
        :class:`Continuation`. ``bare`` skips the positional presets.
        """
        args = tuple(call_args) if bare else (*self.preset_args, *call_args)

        if self.mode is StepMode.DIRECT:
            result = self.step(*args, **self.preset_kwargs)
            if completion is None:
                return result
            completion(result)
            return None

        if self.mode is StepMode.CONTINUATION:
            if completion is None:
                raise MisusedContinuationError(
                    f"Continuation-based step {self.describe()} was invoked without a completion"
                )
            self.step(*args, once(completion, self.label), **self.preset_kwargs)
            return None

        raise AssertionError(f"Unhandled step mode: {self.mode!r}")

    def partial(self, *args: Any, **kwargs: Any) -> StepSpec:
        """Return a copy with extra preset arguments appended."""
        return replace(
            self,
            preset_args=(*self.preset_args, *args),
            preset_kwargs=frozendict({**self.preset_kwargs, **kwargs}),
        )


def direct(step: Callable[..., Any], *preset_args: Any, **preset_kwargs: Any) -> StepSpec:
    return StepSpec(
        step=step,
        mode=StepMode.DIRECT,
        preset_args=preset_args,
        preset_kwargs=frozendict(preset_kwargs),
        defined_at=capture_definition_site(),
    )


def continuation(step: Callable[..., Any], *preset_args: Any, **preset_kwargs: Any) -> StepSpec:
    return StepSpec(
        step=step,
        mode=StepMode.CONTINUATION,
        preset_args=preset_args,
        preset_kwargs=frozendict(preset_kwargs),
        defined_at=capture_definition_site(),
    )


class Composite(ABC):
    """Base for combinators; every combinator is itself usable as a step.

    Calling a composite follows the step convention of its own :attr:`mode`:
    when it is continuation-based the last positional argument is the
    completion.
    """

    @property
    @abstractmethod
    def mode(self) -> StepMode: ...

    @abstractmethod
    def _run(self, call_args: tuple[Any, ...], completion: Continuation | None) -> Any: ...

    @property
    def label(self) -> str:
        return type(self).__name__

    def invoke(self, *call_args: Any) -> Any:
        completion: Continuation | None = None
        if self.mode is StepMode.CONTINUATION:
            if not call_args or not callable(call_args[-1]):
                raise MisusedContinuationError(
                    f"{self.label} is continuation-based and must be invoked with a "
                    "completion as its last argument"
                )
            completion = once(call_args[-1], f"{self.label}.completion")
            call_args = call_args[:-1]
        return self._run(tuple(call_args), completion)

    def __call__(self, *call_args: Any) -> Any:
        return self.invoke(*call_args)

    def as_spec(self, *preset_args: Any, **preset_kwargs: Any) -> StepSpec:
        """Wrap this composite in a :class:`StepSpec` using its current mode."""
        return StepSpec(
            step=self,
            mode=self.mode,
            preset_args=preset_args,
            preset_kwargs=frozendict(preset_kwargs),
            label=self.label,
            defined_at=capture_definition_site(),
        )


def as_spec(value: StepSpec | Composite, *, role: str = "step") -> StepSpec:
    """Normalize a combinator argument into a :class:`StepSpec`.

    Bare callables are rejected: their mode cannot be known without being told.
    """
    if isinstance(value, StepSpec):
        return value
    if isinstance(value, Composite):
        return value.as_spec()
    if callable(value):
        raise TypeError(
            f"{role} must be a StepSpec or a combinator, got bare callable "
            f"{describe_callable(value)}; wrap it with direct(...) or continuation(...)"
        )
    raise TypeError(f"{role} must be a StepSpec or a combinator (type={type(value).__name__})")


__all__ = [
    "Completion",
    "Composite",
    "StepMode",
    "StepSpec",
    "as_spec",
    "continuation",
    "direct",
]
