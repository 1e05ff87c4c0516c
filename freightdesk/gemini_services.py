"""Gemini-backed analysis and news collaborators through the Datapizza client factory."""

from __future__ import annotations

import asyncio
import os
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from freightdesk.config import gemini_model
from freightdesk.contracts import LogisticsResult, NewsDigest, ShipmentData
from freightdesk.telemetry import annotate, start_span


M = TypeVar("M", bound=BaseModel)


class GeminiServiceError(RuntimeError):
    """Raised when the Gemini collaborators cannot be configured or return nothing usable."""


class StructuredClient(Protocol):
    def structured_response(self, *, input: str, output_cls: type[BaseModel]) -> Any:
        ...


ANALYST_SYSTEM_PROMPT = (
    "You are a senior freight forwarding and customs analyst. "
    "Given a shipment plan, return only the structured LogisticsResult. "
    "Use realistic illustrative figures in USD unless a field states otherwise."
)

NEWS_SYSTEM_PROMPT = (
    "You are a shipping market intelligence desk. "
    "Summarize current global shipping and freight news. Return only structured fields."
)


def _create_client(system_prompt: str, api_key: str | None, model: str | None) -> StructuredClient:
    resolved_api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not resolved_api_key:
        raise GeminiServiceError("GEMINI_API_KEY is required for the Gemini collaborators.")

    from datapizza.clients.factory import ClientFactory

    return ClientFactory.create(
        provider="google",
        api_key=resolved_api_key,
        model=model or gemini_model(),
        system_prompt=system_prompt,
        temperature=0.2,
    )


def _first_structured(response: Any, output_cls: type[M]) -> M:
    structured = getattr(response, "structured_data", None)
    if not structured:
        raise GeminiServiceError(f"Gemini returned no structured {output_cls.__name__}.")
    payload = structured[0]
    if isinstance(payload, output_cls):
        return payload
    if isinstance(payload, BaseModel):
        return output_cls.model_validate(payload.model_dump())
    return output_cls.model_validate(payload)


def build_analysis_prompt(shipment: ShipmentData) -> str:
    return "\n".join(
        [
            "Analyze this shipment plan end to end.",
            f"shipping_mode: {shipment.shipping_mode.value}",
            f"factory_location: {shipment.factory_location}",
            f"origin_port: {shipment.origin_port}",
            f"product_description: {shipment.product_description}",
            f"weight_kg: {shipment.weight}",
            f"volume_m3: {shipment.volume}",
            f"invoice_amount: {shipment.invoice_amount} {shipment.currency.value}",
            f"incoterm: {shipment.incoterm.value}",
            f"container_type: {shipment.container_type.value}",
            "Cover: product classification with an HS code hint; an air and a sea option, each "
            "with ordered ports and legs (Inland, Freight, Customs, Delivery) whose durations and "
            "costs add up to the option totals; the incoterm fee breakdown; container "
            "utilization (0-100) with loading advice; payment currency options with exactly one "
            "recommended; ordered import steps; mandatory and recommended certificates; a freight "
            "price trend with the best shipping window; 6 months of chronological price history; "
            "air and sea tracking ids with a plausible live position.",
        ]
    )


def build_news_prompt() -> str:
    return (
        "List the most relevant recent shipping and freight news items "
        "(port congestion, canal disruptions, rate moves, regulation). "
        "For each give a headline, a short summary, the impact on shipping and the date. "
        "Cite the sources you relied on with title and uri."
    )


class GeminiLogisticsAnalyst:
    """Analysis collaborator: ShipmentData -> LogisticsResult."""

    def __init__(
        self,
        client: StructuredClient | None = None,
        *,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self._model = model or gemini_model()
        self._client = client or _create_client(ANALYST_SYSTEM_PROMPT, api_key, self._model)

    async def analyze(self, shipment: ShipmentData) -> LogisticsResult:
        with start_span("collaborator.gemini.analyze") as span:
            annotate(span, model=self._model)
            response = await asyncio.to_thread(
                self._client.structured_response,
                input=build_analysis_prompt(shipment),
                output_cls=LogisticsResult,
            )
            return _first_structured(response, LogisticsResult)


class GeminiNewsDesk:
    """News collaborator: no input -> NewsDigest."""

    def __init__(
        self,
        client: StructuredClient | None = None,
        *,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self._model = model or gemini_model()
        self._client = client or _create_client(NEWS_SYSTEM_PROMPT, api_key, self._model)

    async def fetch_shipping_news(self) -> NewsDigest:
        with start_span("collaborator.gemini.news") as span:
            annotate(span, model=self._model)
            response = await asyncio.to_thread(
                self._client.structured_response,
                input=build_news_prompt(),
                output_cls=NewsDigest,
            )
            digest = _first_structured(response, NewsDigest)
            annotate(span, news_items=len(digest.news))
            return digest
