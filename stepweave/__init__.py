"""
stepweave - composable direct and continuation-based steps.

Combinators assemble steps into sequential chains, branch-on-result
dispatch, predicate-driven loops and fan-out/fan-in joins. Each step
declares whether it returns its result (direct) or reports it through a
completion (continuation-based); every combinator is itself a step, so
they nest freely.

Example:
    >>> from stepweave import Chain, direct
    >>> chain = Chain(direct(lambda x: x + 1)).append(direct(lambda x: x * 2))
    >>> chain(3)
    8
"""

from stepweave.asyncio_bridge import from_async, run_async
from stepweave.branch import Branch, BranchOptions, Selection
from stepweave.chain import Chain, ChainNode
from stepweave.continuation import Continuation, once
from stepweave.errors import (
    InvalidChainError,
    MisusedContinuationError,
    StepweaveError,
    UnknownBranchError,
)
from stepweave.join import Join
from stepweave.loop import Loop, LoopPhase, LoopState
from stepweave.step import (
    Composite,
    StepMode,
    StepSpec,
    as_spec,
    continuation,
    direct,
)

__version__ = "0.1.0"

__all__ = [
    "Branch",
    "BranchOptions",
    "Chain",
    "ChainNode",
    "Composite",
    "Continuation",
    "InvalidChainError",
    "Join",
    "Loop",
    "LoopPhase",
    "LoopState",
    "MisusedContinuationError",
    "Selection",
    "StepMode",
    "StepSpec",
    "StepweaveError",
    "UnknownBranchError",
    "as_spec",
    "continuation",
    "direct",
    "from_async",
    "once",
    "run_async",
]
