"""Public API surface of stepweave."""

from __future__ import annotations

import pytest

import stepweave


@pytest.mark.parametrize("name", stepweave.__all__)
def test_exported_names_resolve(name: str) -> None:
    assert hasattr(stepweave, name)


@pytest.mark.parametrize(
    "name",
    ["Chain", "Branch", "Loop", "Join"],
)
def test_combinators_are_composites(name: str) -> None:
    assert issubclass(getattr(stepweave, name), stepweave.Composite)


def test_error_hierarchy() -> None:
    assert issubclass(stepweave.InvalidChainError, stepweave.StepweaveError)
    assert issubclass(stepweave.UnknownBranchError, KeyError)
    assert issubclass(stepweave.MisusedContinuationError, RuntimeError)


def test_internal_helpers_not_in_all() -> None:
    assert "_LoopRun" not in stepweave.__all__
    assert "capture_definition_site" not in stepweave.__all__
