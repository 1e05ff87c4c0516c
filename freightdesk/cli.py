"""Command line interface for FreightDesk."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import webbrowser
from typing import Any, Sequence

from freightdesk.config import log_level
from freightdesk.contracts import ContainerType, Currency, Incoterm, ShippingMode
from freightdesk.gemini_services import GeminiServiceError
from freightdesk.intake import ShipmentInputError, parse_shipment
from freightdesk.session import build_session, render_analysis_text
from freightdesk.telemetry import start_span


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freightdesk",
        description="Shipment plan analysis, shipping news and tracking lookups.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        default=None,
        help="Use deterministic offline collaborators (defaults to FREIGHTDESK_OFFLINE).",
    )
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a shipment plan.")
    analyze_parser.add_argument("--mode", dest="shipping_mode", default="DIRECT", help=_choices(ShippingMode))
    analyze_parser.add_argument("--factory", dest="factory_location", required=True)
    analyze_parser.add_argument("--product", dest="product_description", required=True)
    analyze_parser.add_argument("--weight", type=float, required=True, help="Weight in kg.")
    analyze_parser.add_argument("--volume", type=float, required=True, help="Volume in m3.")
    analyze_parser.add_argument("--invoice", dest="invoice_amount", type=float, required=True)
    analyze_parser.add_argument("--currency", default="USD", help=_choices(Currency))
    analyze_parser.add_argument("--incoterm", default="FOB", help=_choices(Incoterm))
    analyze_parser.add_argument("--origin-port", dest="origin_port", default="")
    analyze_parser.add_argument("--container", dest="container_type", default="GP20", help=_choices(ContainerType))
    analyze_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="Output format for the analysis.",
    )

    subparsers.add_parser("news", help="Fetch the shipping news digest.")

    track_parser = subparsers.add_parser("track", help="Resolve a container or vessel tracking URL.")
    track_parser.add_argument("identifier", help="Container code (e.g. MSCU1234567) or vessel name.")
    track_parser.add_argument("--open", action="store_true", help="Open the URL in a browser tab.")
    return parser


def _choices(enum_cls: Any) -> str:
    return "One of: " + ", ".join(member.name for member in enum_cls)


_SHIPMENT_ARGS = (
    "shipping_mode",
    "factory_location",
    "product_description",
    "weight",
    "volume",
    "invoice_amount",
    "currency",
    "incoterm",
    "origin_port",
    "container_type",
)


def run_analysis(raw: dict[str, Any], *, offline: bool | None = None) -> dict[str, Any]:
    shipment = parse_shipment(raw)
    session = build_session(offline=offline)
    with start_span("cli.analyze"):
        return asyncio.run(session.analyze(shipment))


def run_news(*, offline: bool | None = None) -> dict[str, Any]:
    session = build_session(offline=offline)
    with start_span("cli.news"):
        return asyncio.run(session.news())


def _keep_closed(url: str) -> None:
    return None


def run_track(identifier: str, *, open_browser: bool = False) -> dict[str, Any]:
    # Tracking never reaches the collaborators.
    opener = webbrowser.open_new_tab if open_browser else _keep_closed
    session = build_session(offline=True, opener=opener)
    lookup = session.views.track(identifier)
    if lookup is None:
        return {"status": "skipped"}
    return {"status": "completed", **lookup.model_dump(mode="json")}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=log_level(), stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "analyze":
            raw = {name: getattr(args, name) for name in _SHIPMENT_ARGS}
            payload = run_analysis(raw, offline=args.offline)
            if args.format == "text":
                print(render_analysis_text(payload))
            else:
                print(json.dumps(payload, ensure_ascii=True))
            return 0 if payload.get("status") == "completed" else 1

        if args.command == "news":
            print(json.dumps(run_news(offline=args.offline), ensure_ascii=True))
            return 0

        if args.command == "track":
            print(json.dumps(run_track(args.identifier, open_browser=args.open), ensure_ascii=True))
            return 0
    except ShipmentInputError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except GeminiServiceError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    parser.print_help()
    return 0
