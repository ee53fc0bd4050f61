from __future__ import annotations

import asyncio

import pytest

from stepweave import Chain, Join, StepMode, continuation, direct, from_async, run_async


async def slow_double(x, delay=0.0):
    await asyncio.sleep(delay)
    return x * 2


@pytest.mark.asyncio
async def test_from_async_builds_continuation_step():
    spec = from_async(slow_double)

    assert spec.mode is StepMode.CONTINUATION
    assert await run_async(spec, 21) == 42


@pytest.mark.asyncio
async def test_from_async_applies_presets():
    spec = from_async(slow_double, 5, delay=0.001)

    assert await run_async(spec) == 10


@pytest.mark.asyncio
async def test_from_async_keeps_keyword_presets_on_the_spec():
    spec = from_async(slow_double, delay=0.0)

    assert dict(spec.preset_kwargs) == {"delay": 0.0}
    assert await run_async(spec, 4) == 8


@pytest.mark.asyncio
async def test_partial_adds_keyword_presets_to_async_step():
    spec = from_async(slow_double).partial(delay=0.001)

    assert spec.preset_kwargs["delay"] == 0.001
    assert await run_async(spec, 3) == 6


@pytest.mark.asyncio
async def test_run_async_on_direct_step():
    assert await run_async(direct(lambda x: x + 1), 1) == 2


@pytest.mark.asyncio
async def test_run_async_collects_multiple_values():
    assert await run_async(continuation(lambda done: done(1, 2))) == (1, 2)
    assert await run_async(continuation(lambda done: done())) is None


@pytest.mark.asyncio
async def test_chain_mixing_async_and_direct_steps():
    chain = Chain.of(direct(lambda x: x + 1), from_async(slow_double), direct(str))

    assert await run_async(chain, 1) == "4"


@pytest.mark.asyncio
async def test_join_keeps_registration_order_with_async_steps():
    join = Join(
        from_async(slow_double, 1, delay=0.02),
        from_async(slow_double, 2, delay=0.0),
        from_async(slow_double, 3, delay=0.01),
    )

    assert await run_async(join) == (2, 4, 6)


@pytest.mark.asyncio
async def test_join_steps_run_concurrently():
    started = []

    async def record(name):
        started.append(name)
        await asyncio.sleep(0.01)
        return name

    join = Join(from_async(record, "a"), from_async(record, "b"))
    task = asyncio.ensure_future(run_async(join))
    for _ in range(3):
        await asyncio.sleep(0)

    assert started == ["a", "b"]
    assert await task == ("a", "b")
