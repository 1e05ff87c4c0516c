"""Per-action request lifecycle: at most one request in flight, one tagged state per action."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from freightdesk.contracts import LogisticsResult, NewsDigest, ShipmentData
from freightdesk.failures import RequestFailure, classify_analysis_failure, news_failure
from freightdesk.telemetry import annotate, mark_failed, start_span


logger = logging.getLogger(__name__)


class AnalysisService(Protocol):
    async def analyze(self, shipment: ShipmentData) -> LogisticsResult:
        ...


class NewsService(Protocol):
    async def fetch_shipping_news(self) -> NewsDigest:
        ...


class ActionKind(str, Enum):
    ANALYSIS = "analysis"
    NEWS = "news"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    previous: Any = None


@dataclass(frozen=True)
class Succeeded:
    value: Any


@dataclass(frozen=True)
class Failed:
    failure: RequestFailure
    previous: Any = None


RequestState = Idle | Pending | Succeeded | Failed

StateListener = Callable[[ActionKind, RequestState], None]


@dataclass
class ActionCell:
    """Current state of one action kind plus the last diagnostics-only failure."""

    state: RequestState = Idle()
    last_failure: RequestFailure | None = None

    @property
    def loading(self) -> bool:
        return isinstance(self.state, Pending)

    @property
    def result(self) -> Any:
        if isinstance(self.state, (Succeeded, Pending)):
            return self.latest_result
        return None

    @property
    def error(self) -> str | None:
        if isinstance(self.state, Failed) and self.state.failure.user_visible:
            return self.state.failure.message
        return None

    @property
    def failure(self) -> RequestFailure | None:
        return self.state.failure if isinstance(self.state, Failed) else None

    @property
    def latest_result(self) -> Any:
        """Most recent successful value, kept while a newer request is pending or failed."""
        if isinstance(self.state, Succeeded):
            return self.state.value
        if isinstance(self.state, (Pending, Failed)):
            return self.state.previous
        return None


def _settled(previous: Any) -> RequestState:
    return Succeeded(previous) if previous is not None else Idle()


class RequestLifecycleController:
    """Owns analysis/news request state and drives the two collaborators."""

    def __init__(self, analysis_service: AnalysisService, news_service: NewsService) -> None:
        self._analysis_service = analysis_service
        self._news_service = news_service
        self._cells: dict[ActionKind, ActionCell] = {kind: ActionCell() for kind in ActionKind}
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def analysis(self) -> ActionCell:
        return self._cells[ActionKind.ANALYSIS]

    @property
    def news(self) -> ActionCell:
        return self._cells[ActionKind.NEWS]

    def cell(self, action: ActionKind) -> ActionCell:
        return self._cells[action]

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: ActionKind, payload: ShipmentData | None = None) -> asyncio.Task[None] | None:
        """Start a request unless one of the same kind is in flight. Must run inside an event loop."""
        loop = asyncio.get_running_loop()
        cell = self._cells[action]
        if cell.loading:
            logger.debug("Dropping %s submission: a request is already in flight.", action.value)
            return None
        if action is ActionKind.ANALYSIS and not isinstance(payload, ShipmentData):
            raise TypeError("Analysis submissions require a ShipmentData payload.")

        self._transition(action, Pending(previous=cell.latest_result))
        logger.info("Submitted %s request.", action.value)
        task = loop.create_task(self._run(action, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def submit(self, action: ActionKind, payload: ShipmentData | None = None) -> bool:
        """Dispatch and wait for the outcome. Returns False when the submission was dropped."""
        task = self.dispatch(action, payload)
        if task is None:
            return False
        await task
        return True

    async def drain(self) -> None:
        """Wait for every outstanding request to apply its outcome."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def dismiss_error(self, action: ActionKind = ActionKind.ANALYSIS) -> None:
        state = self._cells[action].state
        if isinstance(state, Failed):
            self._transition(action, _settled(state.previous))

    def clear(self, action: ActionKind) -> None:
        """Drop a stale result. An in-flight request keeps running and still applies its outcome."""
        if self._cells[action].loading:
            self._transition(action, Pending(previous=None))
        else:
            self._transition(action, Idle())

    async def _run(self, action: ActionKind, payload: ShipmentData | None) -> None:
        with start_span(f"request.{action.value}") as span:
            annotate(span, action=action.value)
            try:
                value = await self._call(action, payload)
            except Exception as exc:  # noqa: BLE001
                self._apply_failure(action, exc, span)
                return
            annotate(span, outcome="succeeded")
            logger.info("%s request succeeded.", action.value.capitalize())
            self._transition(action, Succeeded(value))

    async def _call(self, action: ActionKind, payload: ShipmentData | None) -> Any:
        if action is ActionKind.ANALYSIS:
            if payload is None:
                raise TypeError("Analysis submissions require a ShipmentData payload.")
            raw = await self._analysis_service.analyze(payload)
            return raw if isinstance(raw, LogisticsResult) else LogisticsResult.model_validate(raw)
        raw = await self._news_service.fetch_shipping_news()
        return raw if isinstance(raw, NewsDigest) else NewsDigest.model_validate(raw)

    def _apply_failure(self, action: ActionKind, exc: Exception, span: Any) -> None:
        cell = self._cells[action]
        previous = cell.latest_result
        if action is ActionKind.NEWS:
            failure = news_failure(exc)
            logger.warning("News fetch failed: %s", failure.detail, exc_info=exc)
            cell.last_failure = failure
            annotate(span, outcome="failed", error_kind=failure.kind.value)
            mark_failed(span, failure.detail)
            self._transition(action, _settled(previous))
            return

        failure = classify_analysis_failure(exc)
        if isinstance(exc, ValidationError):
            logger.error("Analysis response did not match the result contract: %s", failure.detail)
        else:
            logger.error("Logistics analysis failed (%s): %s", failure.kind.value, failure.detail, exc_info=exc)
        cell.last_failure = failure
        annotate(span, outcome="failed", error_kind=failure.kind.value)
        mark_failed(span, failure.detail)
        self._transition(action, Failed(failure=failure, previous=previous))

    def _transition(self, action: ActionKind, state: RequestState) -> None:
        self._cells[action].state = state
        for listener in list(self._listeners):
            try:
                listener(action, state)
            except Exception:  # noqa: BLE001
                logger.exception("State listener failed for %s.", action.value)
