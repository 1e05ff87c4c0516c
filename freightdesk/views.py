"""Panel selection and the transition side effects tied to it."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
from typing import Callable
import webbrowser

from pydantic import BaseModel

from freightdesk.contracts import LogisticsResult, NewsDigest, TrackingData
from freightdesk.lifecycle import ActionKind, RequestLifecycleController
from freightdesk.telemetry import annotate, start_span
from freightdesk.tracking import TrackingLookup, build_tracking_lookup


logger = logging.getLogger(__name__)

UrlOpener = Callable[[str], object]


class ViewMode(str, Enum):
    PRIMARY = "primary"
    FLEET = "fleet"
    NEWS = "news"


class PrimaryPanel(BaseModel):
    loading: bool
    result: LogisticsResult | None = None
    error: str | None = None
    # Last successful analysis, rendered under the error banner.
    previous_result: LogisticsResult | None = None


class NewsPanel(BaseModel):
    loading: bool
    digest: NewsDigest | None = None


class FleetPanel(BaseModel):
    placeholder: bool
    tracking: TrackingData | None = None


class ViewOrchestrator:
    """Tracks the active panel; entering the news panel loads the digest once."""

    def __init__(
        self,
        controller: RequestLifecycleController,
        *,
        opener: UrlOpener | None = None,
    ) -> None:
        self._controller = controller
        self._opener = opener or webbrowser.open_new_tab
        self.current = ViewMode.PRIMARY

    @property
    def controller(self) -> RequestLifecycleController:
        return self._controller

    def select(self, view: ViewMode) -> asyncio.Task[None] | None:
        with start_span("view.select") as span:
            annotate(span, view=view.value)
            self.current = view
            if view is ViewMode.NEWS:
                return self._enter_news()
            return None

    def refresh_news(self) -> asyncio.Task[None] | None:
        return self._controller.dispatch(ActionKind.NEWS)

    def _enter_news(self) -> asyncio.Task[None] | None:
        news = self._controller.news
        if news.result is not None or news.loading:
            return None
        logger.debug("First entry into the news panel; loading digest.")
        return self._controller.dispatch(ActionKind.NEWS)

    def primary_panel(self) -> PrimaryPanel:
        cell = self._controller.analysis
        previous = cell.latest_result if cell.error is not None else None
        return PrimaryPanel(loading=cell.loading, result=cell.result, error=cell.error, previous_result=previous)

    def news_panel(self) -> NewsPanel:
        cell = self._controller.news
        return NewsPanel(loading=cell.loading, digest=cell.result)

    def fleet_panel(self) -> FleetPanel:
        latest = self._controller.analysis.latest_result
        if latest is None:
            return FleetPanel(placeholder=True)
        return FleetPanel(placeholder=False, tracking=latest.tracking_data)

    def track(self, identifier: str) -> TrackingLookup | None:
        lookup = build_tracking_lookup(identifier)
        if lookup is None:
            return None
        with start_span("view.track") as span:
            annotate(span, lookup_kind=lookup.kind.value)
            self._opener(lookup.url)
        return lookup
