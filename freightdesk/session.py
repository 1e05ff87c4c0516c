"""Session wiring: collaborators, lifecycle controller and view orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from freightdesk.config import load_env_file, offline_mode
from freightdesk.contracts import ShipmentData
from freightdesk.gemini_services import GeminiLogisticsAnalyst, GeminiNewsDesk
from freightdesk.lifecycle import ActionKind, AnalysisService, NewsService, RequestLifecycleController
from freightdesk.offline_services import OfflineLogisticsAnalyst, OfflineNewsDesk
from freightdesk.views import UrlOpener, ViewMode, ViewOrchestrator


logger = logging.getLogger(__name__)


@dataclass
class Session:
    controller: RequestLifecycleController
    views: ViewOrchestrator

    async def analyze(self, shipment: ShipmentData) -> dict[str, Any]:
        await self.controller.submit(ActionKind.ANALYSIS, shipment)
        return analysis_payload(self)

    async def news(self) -> dict[str, Any]:
        task = self.views.select(ViewMode.NEWS)
        if task is not None:
            await task
        return news_payload(self)


def build_services(*, offline: bool | None = None) -> tuple[AnalysisService, NewsService]:
    use_offline = offline_mode() if offline is None else offline
    if use_offline:
        logger.info("Using offline collaborators.")
        return OfflineLogisticsAnalyst(), OfflineNewsDesk()
    return GeminiLogisticsAnalyst(), GeminiNewsDesk()


def build_session(
    *,
    offline: bool | None = None,
    opener: UrlOpener | None = None,
    env_file: str = ".env",
) -> Session:
    load_env_file(env_file)
    analysis_service, news_service = build_services(offline=offline)
    controller = RequestLifecycleController(analysis_service, news_service)
    return Session(controller=controller, views=ViewOrchestrator(controller, opener=opener))


def analysis_payload(session: Session) -> dict[str, Any]:
    panel = session.views.primary_panel()
    if panel.error is not None:
        failure = session.controller.analysis.failure
        return {
            "status": "failed",
            "error_kind": failure.kind.value if failure else None,
            "error": panel.error,
        }
    if panel.result is None:
        return {"status": "idle"}
    result = panel.result
    return {
        "status": "completed",
        "result": result.model_dump(mode="json", by_alias=True),
        "import_steps_summary": [step.step for step in result.import_steps_summary()],
        "advisories": result.advisories(),
    }


def news_payload(session: Session) -> dict[str, Any]:
    panel = session.views.news_panel()
    if panel.digest is None:
        return {"status": "unavailable", "news": [], "sources": []}
    return {"status": "completed", **panel.digest.model_dump(mode="json", by_alias=True)}


def render_analysis_text(payload: dict[str, Any]) -> str:
    if payload.get("status") != "completed":
        return str(payload.get("error") or "No analysis available.")
    result = payload["result"]
    lines = [
        f"Classification: {result['classification']['category']} / {result['classification']['subCategory']}",
    ]
    for key in ("flightOption", "seaOption"):
        option = result[key]
        lines.append(
            f"{option['method']}: {option['route']} | {option['estimatedDays']} days | "
            f"USD {option['estimatedCost']:,.2f}"
        )
    container = result["containerRecommendation"]
    lines.append(f"Container: {container['type']} ({container['utilizationPercent']}% full)")
    lines.append(f"Pay in: {result['currencyOptimization']['recommendation']}")
    lines.append("Import steps:")
    lines.extend(f"  - {step}" for step in payload["import_steps_summary"])
    for advisory in payload.get("advisories", []):
        lines.append(f"! {advisory}")
    return "\n".join(lines)
