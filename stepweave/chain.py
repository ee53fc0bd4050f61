"""Sequential chain: each step's output becomes the next step's input."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from stepweave.continuation import Continuation
from stepweave.errors import InvalidChainError
from stepweave.step import Composite, StepMode, StepSpec, as_spec

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ChainNode:
    """A chain link owning its spec and, exclusively, its successor."""

    spec: StepSpec
    next: ChainNode | None = None

    def link(self, node: ChainNode) -> ChainNode:
        if self.next is not None:
            raise InvalidChainError(
                f"Chain node {self.spec.label} is already linked to {self.next.spec.label}"
            )
        self.next = node
        return node


class Chain(Composite):
    """Links steps so each one's output feeds the next.

    A direct node with a successor passes its return value as the successor's
    only argument. A continuation-based node with a successor is handed a
    continuation that runs the successor with whatever values it is completed
    with. The chain is direct when every node is direct, otherwise it is
    continuation-based and its completion receives the last node's result.
    """

    # None only on an instance that skipped __init__; append reports it.
    _root: ChainNode | None = None
    _tail: ChainNode | None = None

    def __init__(self, root: StepSpec | Composite | None) -> None:
        if root is None:
            raise InvalidChainError("A chain must be constructed with a root step")
        self._root = ChainNode(as_spec(root, role="Chain root"))
        self._tail = self._root

    @classmethod
    def of(cls, *specs: StepSpec | Composite) -> Chain:
        if not specs:
            raise InvalidChainError("Chain.of() needs at least one step")
        chain = cls(specs[0])
        for spec in specs[1:]:
            chain.append(spec)
        return chain

    def nodes(self) -> Iterator[ChainNode]:
        node = self._root
        while node is not None:
            yield node
            node = node.next

    @property
    def specs(self) -> tuple[StepSpec, ...]:
        return tuple(node.spec for node in self.nodes())

    def __len__(self) -> int:
        return sum(1 for _ in self.nodes())

    @property
    def mode(self) -> StepMode:
        if all(node.spec.is_direct for node in self.nodes()):
            return StepMode.DIRECT
        return StepMode.CONTINUATION

    def append(self, spec: StepSpec | Composite) -> Chain:
        """Extend the chain in place and return it."""
        if self._tail is None:
            raise InvalidChainError("Cannot append to a chain without a root step")
        self._tail = self._tail.link(ChainNode(as_spec(spec, role="Chain step")))
        return self

    def append_copy(self, spec: StepSpec | Composite) -> Chain:
        """Return a new chain holding copies of this chain's nodes plus ``spec``."""
        return Chain.of(*self.specs).append(spec)

    def _run(self, call_args: tuple[Any, ...], completion: Continuation | None) -> Any:
        return self._run_from(self._root, call_args, completion)

    def _run_from(
        self,
        node: ChainNode,
        args: tuple[Any, ...],
        completion: Continuation | None,
    ) -> Any:
        while True:
            spec = node.spec
            successor = node.next
            if successor is None:
                return spec.apply(args, completion)

            if spec.mode is StepMode.DIRECT:
                args = (spec.apply(args),)
                node = successor
                continue

            def resume(*results: Any, _successor: ChainNode = successor) -> Any:
                logger.debug("Chain resumes at %s", _successor.spec.label)
                return self._run_from(_successor, results, completion)

            spec.apply(args, resume)
            return None

    def __repr__(self) -> str:
        labels = " -> ".join(spec.label or "?" for spec in self.specs)
        return f"Chain({labels})"


__all__ = ["Chain", "ChainNode"]
