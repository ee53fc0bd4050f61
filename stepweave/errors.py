"""Error types raised by the stepweave combinators."""

from __future__ import annotations

from typing import Any


class StepweaveError(Exception):
    """Base class for errors raised by the combinator runtime itself."""


class InvalidChainError(StepweaveError):
    """Raised when a chain is built or extended without a root step."""


class UnknownBranchError(StepweaveError, KeyError):
    """Raised when a branch selection names a key missing from the option table.

    Nothing is invoked when this is raised: the root step has already run, but
    no option was selected.

    Attributes:
        key: The selection key that was not found.
        available: Snapshot of the keys registered at dispatch time.
    """

    def __init__(self, key: Any, available: tuple[Any, ...] = ()) -> None:
        self.key = key
        self.available = available
        super().__init__(
            f"No branch option registered for key {key!r}\n"
            f"Hint: registered keys are {list(available)!r}; add one with `add_option({key!r}, spec)`"
        )

    def __str__(self) -> str:
        return str(self.args[0])


class MisusedContinuationError(StepweaveError, RuntimeError):
    """Raised when the continuation-based step convention is broken.

    Covers a completion fired more than once, a continuation-based step or
    composite invoked without a completion, and a direct step placed where
    only continuation-based steps are accepted.
    """


__all__ = [
    "InvalidChainError",
    "MisusedContinuationError",
    "StepweaveError",
    "UnknownBranchError",
]
