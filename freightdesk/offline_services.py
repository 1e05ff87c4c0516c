"""Network-free collaborators returning illustrative, deterministic figures."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Callable

from freightdesk.contracts import (
    ContainerType,
    Currency,
    Incoterm,
    LogisticsResult,
    NewsDigest,
    ShipmentData,
    ShippingMode,
)


Clock = Callable[[], datetime]

USD_PER_UNIT = {
    Currency.USD: 1.0,
    Currency.EUR: 1.08,
    Currency.GBP: 1.27,
    Currency.CNY: 0.14,
}

CONTAINER_CAPACITY_M3 = {
    ContainerType.LCL: 15.0,
    ContainerType.GP20: 33.0,
    ContainerType.GP40: 67.0,
    ContainerType.HC40: 76.0,
    ContainerType.REF20: 28.0,
    ContainerType.OT20: 32.0,
    ContainerType.FR20: 28.0,
}

# Share of the invoice value charged to the importer per incoterm.
INCOTERM_FEE_RATE = {
    Incoterm.EXW: 0.09,
    Incoterm.FOB: 0.07,
    Incoterm.CIF: 0.05,
    Incoterm.DAP: 0.04,
    Incoterm.DDP: 0.02,
}

AIR_VOLUMETRIC_KG_PER_M3 = 167.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _digest_int(*parts: Any) -> int:
    text = "|".join(str(part) for part in parts)
    return int(sha256(text.encode("utf-8")).hexdigest()[:12], 16)


class OfflineLogisticsAnalyst:
    """Deterministic stand-in for the reasoning service."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _utc_now

    async def analyze(self, shipment: ShipmentData) -> LogisticsResult:
        return build_offline_result(shipment, now=self._clock())


class OfflineNewsDesk:
    """Fixed shipping digest dated relative to the clock."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _utc_now

    async def fetch_shipping_news(self) -> NewsDigest:
        return build_offline_digest(now=self._clock())


def build_offline_result(shipment: ShipmentData, *, now: datetime) -> LogisticsResult:
    base_value_usd = round(shipment.invoice_amount * USD_PER_UNIT[shipment.currency], 2)
    intermodal = shipment.shipping_mode is ShippingMode.INTERMODAL
    seed = _digest_int(shipment.model_dump_json())

    return LogisticsResult.model_validate(
        {
            "classification": _classification(shipment),
            "flight_option": _air_option(shipment, intermodal),
            "sea_option": _sea_option(shipment, intermodal),
            "incoterm_analysis": _incoterm_analysis(shipment, base_value_usd),
            "container_recommendation": _container_recommendation(shipment),
            "currency_optimization": _currency_optimization(shipment, base_value_usd),
            "import_steps": _import_steps(base_value_usd),
            "mandatory_certificates": _certificates(shipment),
            "forecasting": {
                "trend": "stable",
                "explanation": "Spot rates are flat against a balanced vessel supply.",
                "best_time_to_ship": "Book within the next two weeks to hold current rates.",
            },
            "historical_price_data": _price_history(now.date(), seed),
            "tracking_data": _tracking(now, seed),
        }
    )


def build_offline_digest(*, now: datetime) -> NewsDigest:
    today = now.date()
    return NewsDigest.model_validate(
        {
            "news": [
                {
                    "headline": "Red Sea diversions keep Asia-Europe transit times elevated",
                    "summary": "Carriers continue to route around the Cape of Good Hope.",
                    "shipping_impact": "Add 10-14 days to sea options via Suez.",
                    "date": today.isoformat(),
                },
                {
                    "headline": "Air cargo capacity recovers on transpacific lanes",
                    "summary": "Belly capacity from new passenger routes softens air rates.",
                    "shipping_impact": "Air freight quotes trend slightly lower.",
                    "date": (today - timedelta(days=1)).isoformat(),
                },
                {
                    "headline": "Balkan corridor customs digitalization enters pilot",
                    "summary": "Electronic transit declarations are accepted at pilot crossings.",
                    "shipping_impact": "Faster inland customs for intermodal routes.",
                    "date": (today - timedelta(days=3)).isoformat(),
                },
            ],
            "sources": [
                {"title": "Offline shipping digest", "uri": "about:blank"},
            ],
        }
    )


def _classification(shipment: ShipmentData) -> dict[str, Any]:
    description = shipment.product_description.lower()
    if shipment.container_type is ContainerType.REF20 or "food" in description:
        return {"category": "Perishables", "sub_category": "Temperature controlled", "hs_code_hint": "0810"}
    if "machine" in description or "equipment" in description:
        return {"category": "Machinery", "sub_category": "Industrial equipment", "hs_code_hint": "8479"}
    return {"category": "General cargo", "sub_category": shipment.product_description, "hs_code_hint": None}


def _air_option(shipment: ShipmentData, intermodal: bool) -> dict[str, Any]:
    chargeable_kg = max(shipment.weight, shipment.volume * AIR_VOLUMETRIC_KG_PER_M3)
    legs = [
        _leg("Factory pickup", shipment.factory_location, 1, 120 + shipment.weight * 0.05, "Inland"),
        _leg("Air freight", "Origin airport", 2, chargeable_kg * 4.2, "Freight"),
        _leg("Import clearance", "Destination airport", 1, 180, "Customs"),
        _leg("Final delivery", "Consignee", 1, 95, "Delivery"),
    ]
    if intermodal:
        legs.insert(1, _leg("Truck to hub", shipment.origin_port, 1, 140, "Inland"))
    return _option("Air", f"{shipment.factory_location} -> destination airport", ["Origin airport", "Destination airport"], legs)


def _sea_option(shipment: ShipmentData, intermodal: bool) -> dict[str, Any]:
    ocean_cost = max(shipment.volume * 85, shipment.weight * 0.12)
    if shipment.container_type is not ContainerType.LCL:
        ocean_cost = max(ocean_cost, CONTAINER_CAPACITY_M3[shipment.container_type] * 60)
    legs = [
        _leg("Drayage to port", shipment.origin_port, 2, 260, "Inland"),
        _leg("Ocean freight", f"{shipment.origin_port} -> Durres", 32, ocean_cost, "Freight"),
        _leg("Port clearance", "Durres", 3, 310, "Customs"),
        _leg("Final delivery", "Consignee", 2, 240, "Delivery"),
    ]
    if intermodal:
        legs.insert(2, _leg("Rail transfer", "Inland terminal", 3, 420, "Inland"))
    return _option("Sea", f"{shipment.origin_port} -> Durres", [shipment.origin_port, "Durres"], legs)


def _leg(label: str, location: str, days: float, cost: float, leg_type: str) -> dict[str, Any]:
    return {"label": label, "location": location, "duration_days": days, "cost": round(cost, 2), "type": leg_type}


def _option(method: str, route: str, ports: list[str], legs: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "method": method,
        "route": route,
        "estimated_days": sum(leg["duration_days"] for leg in legs),
        "estimated_cost": round(sum(leg["cost"] for leg in legs), 2),
        "ports": ports,
        "legs": legs,
    }


def _incoterm_analysis(shipment: ShipmentData, base_value_usd: float) -> dict[str, Any]:
    fees = base_value_usd * INCOTERM_FEE_RATE[shipment.incoterm]
    breakdown = [
        {"label": "Handling", "amount": round(fees * 0.4, 2)},
        {"label": "Documentation", "amount": round(fees * 0.15, 2)},
        {"label": "Insurance", "amount": round(fees * 0.45, 2)},
    ]
    return {
        "description": f"Under {shipment.incoterm.value} the buyer covers the listed charges.",
        "total_estimated_fees": round(sum(line["amount"] for line in breakdown), 2),
        "breakdown": breakdown,
    }


def _container_recommendation(shipment: ShipmentData) -> dict[str, Any]:
    capacity = CONTAINER_CAPACITY_M3[shipment.container_type]
    utilization = min(100.0, round(shipment.volume / capacity * 100, 1))
    reason = "Volume fits the selected equipment." if utilization < 100 else "Cargo exceeds one unit; split the load."
    return {
        "type": shipment.container_type.value,
        "reason": reason,
        "utilization_percent": utilization,
        "nature_of_goods_advice": "Palletize and brace cargo; keep heavy items on the floor.",
    }


def _currency_optimization(shipment: ShipmentData, base_value_usd: float) -> dict[str, Any]:
    spreads = {Currency.USD: 0.0, Currency.EUR: 0.012, Currency.CNY: -0.008}
    options = []
    for currency, spread in spreads.items():
        total = round(base_value_usd * (1 + spread) / USD_PER_UNIT[currency], 2)
        options.append(
            {
                "currency": currency.value,
                "total_cost": total,
                "usd_equivalent": round(base_value_usd * (1 + spread), 2),
                "exchange_rate_risk": "Low" if currency is Currency.USD else "Medium",
            }
        )
    best = min(options, key=lambda option: option["usd_equivalent"])
    payment_options = [
        {
            "currency": option["currency"],
            "total_cost": option["total_cost"],
            "is_recommended": option is best,
            "exchange_rate_risk": option["exchange_rate_risk"],
        }
        for option in options
    ]
    saving = round(base_value_usd - best["usd_equivalent"], 2)
    return {
        "recommendation": best["currency"],
        "payment_options": payment_options,
        "savings_potential": f"About USD {saving:,.2f} versus paying in USD.",
        "analysis": f"Paying in {best['currency']} wins against the supplier's quote currency "
        f"({shipment.currency.value}) at current spreads.",
        "reasoning": "Supplier-side pricing in the recommended currency carries the lowest conversion spread.",
        "base_value_usd": base_value_usd,
    }


def _import_steps(base_value_usd: float) -> list[dict[str, Any]]:
    return [
        {"step": "Commercial invoice", "detail": "Issue invoice and packing list.", "estimated_cost": 0},
        {"step": "Export declaration", "detail": "File export customs entry.", "estimated_cost": 85},
        {"step": "Cargo insurance", "detail": "Insure at 110% of value.", "estimated_cost": round(base_value_usd * 0.003, 2)},
        {"step": "Transit declaration", "detail": "Open transit document for inland legs.", "estimated_cost": 60},
        {"step": "Import declaration", "detail": "Lodge import entry with HS code.", "estimated_cost": 120},
        {"step": "Duties and VAT", "detail": "Pay assessed duties and VAT.", "estimated_cost": round(base_value_usd * 0.18, 2)},
        {"step": "Release and delivery", "detail": "Collect release order and book delivery.", "estimated_cost": 45},
    ]


def _certificates(shipment: ShipmentData) -> list[dict[str, Any]]:
    certificates = [
        {
            "certificate": "Certificate of Origin",
            "description": "Proves the country of manufacture for preferential duty.",
            "level": "Mandatory",
            "authority": "Chamber of Commerce",
        },
        {
            "certificate": "CE Declaration of Conformity",
            "description": "Confirms conformity with applicable product directives.",
            "level": "Recommended",
            "authority": "Manufacturer",
        },
    ]
    if shipment.container_type is ContainerType.REF20:
        certificates.append(
            {
                "certificate": "Phytosanitary Certificate",
                "description": "Required for plant-based perishables.",
                "level": "Mandatory",
                "authority": "National Plant Protection Organization",
            }
        )
    return certificates


def _price_history(today: date, seed: int) -> list[dict[str, Any]]:
    points = []
    year, month = today.year, today.month
    for offset in range(5, -1, -1):
        m_year, m_month = year, month - offset
        while m_month <= 0:
            m_month += 12
            m_year -= 1
        price = 2400 + (seed >> offset) % 400
        points.append({"month": date(m_year, m_month, 1).strftime("%b %Y"), "price": float(price)})
    return points


def _tracking(now: datetime, seed: int) -> dict[str, Any]:
    return {
        "air_tracking_id": f"176-{seed % 100_000_000:08d}",
        "sea_tracking_id": f"MSCU{seed % 10_000_000:07d}",
        "live_localization": {
            "latitude": round((seed % 18_000) / 100 - 90, 4),
            "longitude": round((seed // 18_000 % 36_000) / 100 - 180, 4),
            "status": "In transit",
            "last_updated": now.isoformat(timespec="minutes"),
        },
    }
