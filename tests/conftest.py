"""Shared fixtures for stepweave tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest


class Deferred:
    """Manual scheduler: queued callbacks run only when the test says so.

    Lets continuation-based steps return before completing, and lets tests
    pick the order in which pending completions fire.
    """

    def __init__(self) -> None:
        self.pending: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []

    def later(self, fn: Callable[..., Any], *args: Any) -> None:
        self.pending.append((fn, args))

    def run_next(self) -> None:
        fn, args = self.pending.pop(0)
        fn(*args)

    def run_at(self, index: int) -> None:
        fn, args = self.pending.pop(index)
        fn(*args)

    def run_all(self) -> None:
        while self.pending:
            self.run_next()

    def run_all_reversed(self) -> None:
        while self.pending:
            self.run_at(-1)


class Calls:
    """Records every call made through ``record``."""

    def __init__(self) -> None:
        self.log: list[tuple[str, tuple[Any, ...]]] = []

    def record(self, name: str, *args: Any) -> None:
        self.log.append((name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.log]


@pytest.fixture
def deferred() -> Deferred:
    return Deferred()


@pytest.fixture
def calls() -> Calls:
    return Calls()


@pytest.fixture
def collected() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture
def collect(collected: list[tuple[Any, ...]]) -> Callable[..., None]:
    def completion(*results: Any) -> None:
        collected.append(results)

    return completion
