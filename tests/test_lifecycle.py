"""Tests for the per-action request lifecycle controller."""

from __future__ import annotations

import asyncio
import logging

import pytest

from freightdesk.contracts import LogisticsResult, NewsDigest, ShipmentData
from freightdesk.failures import QUOTA_EXCEEDED_MESSAGE, SERVICE_UNAVAILABLE_MESSAGE, ErrorKind
from freightdesk.lifecycle import (
    ActionKind,
    Failed,
    Idle,
    Pending,
    RequestLifecycleController,
    RequestState,
    Succeeded,
)


class FakeAnalyst:
    def __init__(self, outcomes: list[object]) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def analyze(self, shipment: ShipmentData) -> LogisticsResult:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome  # type: ignore[return-value]


class FakeNewsDesk:
    def __init__(self, outcomes: list[object]) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def fetch_shipping_news(self) -> NewsDigest:
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome  # type: ignore[return-value]


def test_successful_submit_stores_exact_result(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    issued = asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))

    assert issued is True
    assert controller.analysis.result is logistics_result
    assert controller.analysis.error is None
    assert controller.analysis.loading is False
    assert isinstance(controller.analysis.state, Succeeded)


def test_quota_failure_sets_quota_message_and_clears_loading(shipment) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([RuntimeError("429 Too Many Requests")])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))

    assert controller.analysis.loading is False
    assert controller.analysis.error == QUOTA_EXCEEDED_MESSAGE
    assert controller.analysis.result is None
    assert controller.analysis.failure is not None
    assert controller.analysis.failure.kind is ErrorKind.QUOTA_EXCEEDED


def test_unrelated_failure_sets_service_unavailable(shipment) -> None:  # type: ignore[no-untyped-def]
    controller = RequestLifecycleController(FakeAnalyst([OSError("dns failure")]), FakeNewsDesk([]))

    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))

    assert controller.analysis.error == SERVICE_UNAVAILABLE_MESSAGE
    assert controller.analysis.result is None


def test_malformed_response_is_service_unavailable(shipment) -> None:  # type: ignore[no-untyped-def]
    controller = RequestLifecycleController(FakeAnalyst([{"classification": "nope"}]), FakeNewsDesk([]))

    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))

    assert controller.analysis.failure is not None
    assert controller.analysis.failure.kind is ErrorKind.SERVICE_UNAVAILABLE


def test_second_submission_while_in_flight_is_dropped(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, logistics_result])

    async def scenario() -> tuple[bool, object, object]:
        analyst.gate = asyncio.Event()
        controller = RequestLifecycleController(analyst, FakeNewsDesk([]))
        first = controller.dispatch(ActionKind.ANALYSIS, shipment)
        state_before = controller.analysis.state
        second = controller.dispatch(ActionKind.ANALYSIS, shipment)
        dropped_unchanged = controller.analysis.state is state_before
        analyst.gate.set()
        assert first is not None
        await first
        return dropped_unchanged, second, controller.analysis.result

    dropped_unchanged, second, result = asyncio.run(scenario())

    assert second is None
    assert dropped_unchanged is True
    assert analyst.calls == 1
    assert result is logistics_result


def test_gathered_submissions_issue_one_request(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    async def scenario() -> list[bool]:
        return list(
            await asyncio.gather(
                controller.submit(ActionKind.ANALYSIS, shipment),
                controller.submit(ActionKind.ANALYSIS, shipment),
            )
        )

    assert asyncio.run(scenario()) == [True, False]
    assert analyst.calls == 1


def test_new_submission_clears_error_and_keeps_previous_result_while_pending(
    shipment, logistics_result
) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, RuntimeError("boom"), logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    async def scenario() -> None:
        await controller.submit(ActionKind.ANALYSIS, shipment)
        await controller.submit(ActionKind.ANALYSIS, shipment)
        assert controller.analysis.error is not None
        assert controller.analysis.result is None
        assert controller.analysis.latest_result is logistics_result

        analyst.gate = asyncio.Event()
        task = controller.dispatch(ActionKind.ANALYSIS, shipment)
        assert controller.analysis.loading is True
        assert controller.analysis.error is None
        assert controller.analysis.result is logistics_result
        analyst.gate.set()
        assert task is not None
        await task

    asyncio.run(scenario())
    assert isinstance(controller.analysis.state, Succeeded)


def test_result_and_error_are_never_both_present(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, RuntimeError("429"), logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))
    seen: list[tuple[object, object]] = []
    controller.subscribe(lambda action, state: seen.append((controller.analysis.result, controller.analysis.error)))

    async def scenario() -> None:
        for _ in range(3):
            await controller.submit(ActionKind.ANALYSIS, shipment)

    asyncio.run(scenario())

    assert len(seen) == 6
    assert all(result is None or error is None for result, error in seen)


def test_dismiss_error_restores_previous_result(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, RuntimeError("offline")])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    async def scenario() -> None:
        await controller.submit(ActionKind.ANALYSIS, shipment)
        await controller.submit(ActionKind.ANALYSIS, shipment)

    asyncio.run(scenario())
    assert isinstance(controller.analysis.state, Failed)

    controller.dismiss_error()

    assert controller.analysis.error is None
    assert controller.analysis.result is logistics_result


def test_dismiss_error_does_not_stop_in_flight_request(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([RuntimeError("boom"), logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    async def scenario() -> None:
        await controller.submit(ActionKind.ANALYSIS, shipment)
        analyst.gate = asyncio.Event()
        task = controller.dispatch(ActionKind.ANALYSIS, shipment)
        controller.dismiss_error()
        assert controller.analysis.loading is True
        analyst.gate.set()
        assert task is not None
        await task

    asyncio.run(scenario())
    assert controller.analysis.result is logistics_result


def test_resubmission_after_quota_failure_succeeds(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([RuntimeError("RESOURCE_EXHAUSTED"), logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))
    controller.dismiss_error()
    assert isinstance(controller.analysis.state, Idle)

    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))
    assert controller.analysis.result is logistics_result


def test_clear_drops_stale_result(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    controller = RequestLifecycleController(FakeAnalyst([logistics_result]), FakeNewsDesk([]))
    asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment))

    controller.clear(ActionKind.ANALYSIS)

    assert isinstance(controller.analysis.state, Idle)
    assert controller.analysis.result is None


def test_clear_while_pending_keeps_request_running(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result, logistics_result])
    controller = RequestLifecycleController(analyst, FakeNewsDesk([]))

    async def scenario() -> None:
        await controller.submit(ActionKind.ANALYSIS, shipment)
        analyst.gate = asyncio.Event()
        controller.dispatch(ActionKind.ANALYSIS, shipment)
        controller.clear(ActionKind.ANALYSIS)
        assert controller.analysis.state == Pending(previous=None)
        analyst.gate.set()
        await controller.drain()

    asyncio.run(scenario())
    assert controller.analysis.result is logistics_result


def test_news_failure_is_logged_not_surfaced(caplog) -> None:  # type: ignore[no-untyped-def]
    news = FakeNewsDesk([TimeoutError("upstream timeout")])
    controller = RequestLifecycleController(FakeAnalyst([]), news)

    with caplog.at_level(logging.WARNING, logger="freightdesk.lifecycle"):
        asyncio.run(controller.submit(ActionKind.NEWS))

    assert controller.news.error is None
    assert controller.news.result is None
    assert controller.news.loading is False
    assert controller.news.last_failure is not None
    assert controller.news.last_failure.kind is ErrorKind.NEWS_FETCH_FAILED
    assert "News fetch failed" in caplog.text


def test_news_refresh_failure_keeps_previous_digest(news_digest) -> None:  # type: ignore[no-untyped-def]
    news = FakeNewsDesk([news_digest, RuntimeError("boom")])
    controller = RequestLifecycleController(FakeAnalyst([]), news)

    async def scenario() -> None:
        await controller.submit(ActionKind.NEWS)
        await controller.submit(ActionKind.NEWS)

    asyncio.run(scenario())

    assert controller.news.result is news_digest
    assert controller.news.error is None


def test_actions_do_not_block_each_other(shipment, logistics_result, news_digest) -> None:  # type: ignore[no-untyped-def]
    analyst = FakeAnalyst([logistics_result])
    news = FakeNewsDesk([news_digest])
    controller = RequestLifecycleController(analyst, news)

    async def scenario() -> None:
        analyst.gate = asyncio.Event()
        controller.dispatch(ActionKind.ANALYSIS, shipment)
        assert await controller.submit(ActionKind.NEWS) is True
        assert controller.analysis.loading is True
        analyst.gate.set()
        await controller.drain()

    asyncio.run(scenario())
    assert controller.news.result is news_digest
    assert controller.analysis.result is logistics_result


def test_analysis_requires_shipment_payload() -> None:
    controller = RequestLifecycleController(FakeAnalyst([]), FakeNewsDesk([]))

    async def scenario() -> None:
        controller.dispatch(ActionKind.ANALYSIS, None)

    with pytest.raises(TypeError):
        asyncio.run(scenario())
    assert isinstance(controller.analysis.state, Idle)


def test_dispatch_outside_event_loop_raises(shipment) -> None:  # type: ignore[no-untyped-def]
    controller = RequestLifecycleController(FakeAnalyst([]), FakeNewsDesk([]))

    with pytest.raises(RuntimeError):
        controller.dispatch(ActionKind.ANALYSIS, shipment)
    assert controller.analysis.loading is False


def test_failing_listener_does_not_wedge_the_action(news_digest, caplog) -> None:  # type: ignore[no-untyped-def]
    news = FakeNewsDesk([news_digest, news_digest])
    controller = RequestLifecycleController(FakeAnalyst([]), news)
    raised: list[RequestState] = []

    def flaky(action: ActionKind, state: RequestState) -> None:
        if not raised:
            raised.append(state)
            raise RuntimeError("listener exploded")

    controller.subscribe(flaky)

    async def scenario() -> tuple[bool, bool]:
        first = await controller.submit(ActionKind.NEWS)
        second = await controller.submit(ActionKind.NEWS)
        return first, second

    with caplog.at_level(logging.ERROR, logger="freightdesk.lifecycle"):
        first, second = asyncio.run(scenario())

    assert (first, second) == (True, True)
    assert isinstance(raised[0], Pending)
    assert controller.news.loading is False
    assert controller.news.result is news_digest
    assert news.calls == 2
    assert "State listener failed for news." in caplog.text


def test_listener_failure_on_completion_does_not_reach_submit(shipment, logistics_result) -> None:  # type: ignore[no-untyped-def]
    controller = RequestLifecycleController(FakeAnalyst([logistics_result]), FakeNewsDesk([]))

    def on_settled(action: ActionKind, state: RequestState) -> None:
        if isinstance(state, Succeeded):
            raise ValueError("render failed")

    controller.subscribe(on_settled)

    assert asyncio.run(controller.submit(ActionKind.ANALYSIS, shipment)) is True
    assert controller.analysis.result is logistics_result
