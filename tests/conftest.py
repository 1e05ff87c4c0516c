from __future__ import annotations

import json
from pathlib import Path

import pytest

from freightdesk.contracts import (
    ContainerType,
    Currency,
    Incoterm,
    LogisticsResult,
    NewsDigest,
    ShipmentData,
    ShippingMode,
)


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture(autouse=True)
def _quiet_tracing(monkeypatch) -> None:
    monkeypatch.setenv("FREIGHTDESK_TRACING_ENABLED", "0")


@pytest.fixture
def shipment() -> ShipmentData:
    return ShipmentData(
        shipping_mode=ShippingMode.INTERMODAL,
        factory_location="Ningbo, China",
        product_description="Packaging machine",
        weight=2400,
        volume=18,
        invoice_amount=25000,
        currency=Currency.USD,
        incoterm=Incoterm.FOB,
        origin_port="Ningbo",
        container_type=ContainerType.GP20,
    )


@pytest.fixture
def logistics_result() -> LogisticsResult:
    return LogisticsResult.model_validate(load_fixture("logistics_result.json"))


@pytest.fixture
def news_digest() -> NewsDigest:
    return NewsDigest.model_validate(load_fixture("news_digest.json"))
