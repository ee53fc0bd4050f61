"""Bridge between continuation-based steps and asyncio."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from frozendict import frozendict

from stepweave.step import Composite, StepMode, StepSpec, as_spec
from stepweave.utils import capture_definition_site, describe_callable

logger = logging.getLogger(__name__)


def _resolved_value(results: tuple[Any, ...]) -> Any:
    if not results:
        return None
    if len(results) == 1:
        return results[0]
    return results


def from_async(
    fn: Callable[..., Awaitable[Any]], *preset_args: Any, **preset_kwargs: Any
) -> StepSpec:
    """Wrap an ``async def`` into a continuation-based step.

    Invoking the step schedules the coroutine on the running event loop and
    calls the completion with its result. Exceptions raised by the coroutine
    are re-raised inside the task callback, where the loop's exception
    handler reports them.
    """

    label = describe_callable(fn)

    def schedule(*args: Any, **kwargs: Any) -> None:
        *call_args, completion = args

        def deliver(task: asyncio.Future[Any]) -> None:
            completion(task.result())

        task = asyncio.ensure_future(fn(*call_args, **kwargs))
        task.add_done_callback(deliver)
        logger.debug("Scheduled %s on the running loop", label)

    return StepSpec(
        step=schedule,
        mode=StepMode.CONTINUATION,
        preset_args=preset_args,
        preset_kwargs=frozendict(preset_kwargs),
        label=label,
        defined_at=capture_definition_site(),
    )


async def run_async(step: StepSpec | Composite, *args: Any) -> Any:
    """Invoke ``step`` and await its completion.

    A continuation-based step resolves to the single value it reported, a
    tuple if it reported several, ``None`` if none. A direct step is simply
    called and its result returned.
    """

    spec = as_spec(step)
    if spec.mode is StepMode.DIRECT:
        return spec.apply(args)

    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def resolve(*results: Any) -> None:
        if not future.done():
            future.set_result(_resolved_value(results))

    spec.apply(args, resolve)
    return await future


__all__ = ["from_async", "run_async"]
