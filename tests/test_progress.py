import asyncio

import pytest

from lookbook.core.config import ProgressConfig
from lookbook.workflow.progress import ProgressEstimator, ProgressState


def test_first_step_is_proportional_to_remaining():
    estimator = ProgressEstimator(smoothing=20.0)
    assert estimator.advance() == pytest.approx(5.0)
    assert estimator.advance() == pytest.approx(5.0 + 95.0 / 20.0)


def test_never_reaches_100_while_running():
    estimator = ProgressEstimator(smoothing=20.0, epsilon=0.1, ceiling=99.0)
    previous = 0.0
    for _ in range(5000):
        current = estimator.advance()
        assert current >= previous
        previous = current
    assert previous == 99.0
    assert estimator.running


def test_epsilon_is_the_minimum_step():
    estimator = ProgressEstimator(smoothing=1000.0, epsilon=0.5, ceiling=99.0)
    estimator.advance()
    assert estimator.percentage == pytest.approx(0.5)


def test_ticker_advances_then_finish_and_reset():
    async def main():
        estimator = ProgressEstimator(tick_interval=0.001, reset_delay=0.01)
        estimator.start("Combining assets")
        await asyncio.sleep(0.05)
        running = estimator.state
        estimator.finish()
        finished = estimator.state
        await asyncio.sleep(0.05)
        return running, finished, estimator.state

    running, finished, after = asyncio.run(main())

    assert running.running
    assert 0 < running.percentage < 100
    assert running.message == "Combining assets"
    assert finished.percentage == 100.0
    assert not finished.running
    assert after == ProgressState()


def test_start_replaces_previous_ticker():
    async def main():
        estimator = ProgressEstimator(tick_interval=0.001)
        estimator.start("first")
        first = estimator._ticker
        estimator.start("second")
        await asyncio.sleep(0.01)
        second = estimator._ticker
        estimator.reset()
        await asyncio.sleep(0.01)
        return first, second

    first, second = asyncio.run(main())

    assert first is not second
    assert first.cancelled()
    assert second.cancelled()


def test_start_cancels_pending_reset():
    async def main():
        estimator = ProgressEstimator(tick_interval=1.0, reset_delay=0.01)
        estimator.start()
        estimator.finish()
        estimator.start("again")
        await asyncio.sleep(0.05)
        state = estimator.state
        estimator.reset()
        return state

    state = asyncio.run(main())

    assert state.running
    assert state.message == "again"


def test_track_resets_immediately_on_failure():
    async def main():
        estimator = ProgressEstimator(tick_interval=0.001, reset_delay=10.0)
        with pytest.raises(RuntimeError):
            async with estimator.track("Building storyboard"):
                await asyncio.sleep(0.01)
                raise RuntimeError("boom")
        return estimator.state

    assert asyncio.run(main()) == ProgressState()


def test_track_finishes_on_success():
    async def main():
        estimator = ProgressEstimator(tick_interval=0.001, reset_delay=10.0)
        async with estimator.track("Refining image"):
            await asyncio.sleep(0.01)
        state = estimator.state
        estimator.reset()
        return state

    state = asyncio.run(main())

    assert state.percentage == 100.0
    assert not state.running


def test_listeners_see_every_change():
    seen = []
    estimator = ProgressEstimator(smoothing=10.0)
    estimator.add_listener(seen.append)

    estimator.advance()
    estimator.set_message("Extracting scene 1/9")
    estimator.reset()

    assert [s.percentage for s in seen] == [10.0, 10.0, 0.0]
    assert seen[1].message == "Extracting scene 1/9"


def test_from_config():
    estimator = ProgressEstimator.from_config(ProgressConfig(smoothing=40.0, ceiling=95.0))
    assert estimator.smoothing == 40.0
    assert estimator.ceiling == 95.0
