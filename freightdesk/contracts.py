"""Structured data contracts for shipment requests, analyses and news digests."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ShippingMode(str, Enum):
    DIRECT = "Direct Route (Mainland to Kosovo)"
    INTERMODAL = "Intermodal (Factory > Port > Freight)"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CNY = "CNY"


class Incoterm(str, Enum):
    EXW = "EXW"
    FOB = "FOB"
    CIF = "CIF"
    DDP = "DDP"
    DAP = "DAP"


class ContainerType(str, Enum):
    LCL = "LCL (Less than Container Load)"
    GP20 = "20ft General Purpose"
    GP40 = "40ft General Purpose"
    HC40 = "40ft High Cube"
    REF20 = "20ft Reefer"
    OT20 = "20ft Open Top"
    FR20 = "20ft Flat Rack"


class ShipmentData(BaseModel):
    """Validated request input. Frozen once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    shipping_mode: ShippingMode
    factory_location: str = Field(min_length=1)
    product_description: str = Field(min_length=1)
    weight: float = Field(gt=0, description="Gross weight in kg.")
    volume: float = Field(gt=0, description="Volume in cubic metres.")
    invoice_amount: float = Field(gt=0)
    currency: Currency
    incoterm: Incoterm
    origin_port: str
    container_type: ContainerType


class _WireModel(BaseModel):
    """Accepts snake_case or the camelCase names emitted by the reasoning service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Classification(_WireModel):
    category: str
    sub_category: str
    hs_code_hint: str | None = None


class RouteLeg(_WireModel):
    label: str
    location: str
    duration_days: float = Field(ge=0)
    cost: float = Field(ge=0)
    type: Literal["Inland", "Freight", "Customs", "Delivery"]


class RouteOption(_WireModel):
    method: str
    route: str
    estimated_days: float = Field(ge=0)
    estimated_cost: float = Field(ge=0)
    ports: list[str] = Field(default_factory=list)
    legs: list[RouteLeg] = Field(default_factory=list)

    def leg_totals_consistent(self, tolerance: float = 0.15) -> bool:
        """Advisory check: legs add up to the option totals within a relative tolerance."""
        if not self.legs:
            return True
        days = sum(leg.duration_days for leg in self.legs)
        cost = sum(leg.cost for leg in self.legs)
        return _close(days, self.estimated_days, tolerance) and _close(
            cost, self.estimated_cost, tolerance
        )


class FeeLine(_WireModel):
    label: str
    amount: float


class IncotermAnalysis(_WireModel):
    description: str
    total_estimated_fees: float
    breakdown: list[FeeLine] = Field(default_factory=list)


class ContainerRecommendation(_WireModel):
    type: str
    reason: str
    utilization_percent: float = Field(ge=0, le=100)
    nature_of_goods_advice: str


class PaymentOption(_WireModel):
    currency: str
    total_cost: float
    is_recommended: bool
    exchange_rate_risk: str


class CurrencyOptimization(_WireModel):
    recommendation: str
    payment_options: list[PaymentOption] = Field(default_factory=list)
    savings_potential: str
    analysis: str
    reasoning: str
    base_value_usd: float = Field(alias="baseValueUSD")

    def recommended_option(self) -> PaymentOption | None:
        for option in self.payment_options:
            if option.is_recommended:
                return option
        return None


class ImportStep(_WireModel):
    step: str
    detail: str
    estimated_cost: float = Field(ge=0)


class Certificate(_WireModel):
    certificate: str
    description: str
    level: Literal["Mandatory", "Recommended"]
    authority: str


class Forecast(_WireModel):
    trend: Literal["rising", "falling", "stable"]
    explanation: str
    best_time_to_ship: str


class PricePoint(_WireModel):
    month: str
    price: float


class LiveLocalization(_WireModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    status: str
    last_updated: str


class TrackingData(_WireModel):
    air_tracking_id: str
    sea_tracking_id: str
    live_localization: LiveLocalization


IMPORT_STEPS_SUMMARY_LIMIT = 6


class LogisticsResult(_WireModel):
    classification: Classification
    flight_option: RouteOption
    sea_option: RouteOption
    incoterm_analysis: IncotermAnalysis
    container_recommendation: ContainerRecommendation
    currency_optimization: CurrencyOptimization
    import_steps: list[ImportStep] = Field(default_factory=list)
    mandatory_certificates: list[Certificate] = Field(default_factory=list)
    forecasting: Forecast
    historical_price_data: list[PricePoint] = Field(default_factory=list)
    tracking_data: TrackingData

    def import_steps_summary(self) -> list[ImportStep]:
        return self.import_steps[:IMPORT_STEPS_SUMMARY_LIMIT]

    def advisories(self) -> list[str]:
        warnings: list[str] = []
        for name, option in (("flight", self.flight_option), ("sea", self.sea_option)):
            if not option.leg_totals_consistent():
                warnings.append(f"The {name} option legs do not add up to its totals.")
        flagged = [o for o in self.currency_optimization.payment_options if o.is_recommended]
        if len(flagged) > 1:
            currencies = ", ".join(o.currency for o in flagged)
            warnings.append(f"More than one payment option is recommended ({currencies}).")
        return warnings


class NewsItem(_WireModel):
    headline: str
    summary: str
    shipping_impact: str
    date: str


class SourceCitation(_WireModel):
    title: str
    uri: str


class NewsDigest(_WireModel):
    news: list[NewsItem] = Field(default_factory=list)
    sources: list[SourceCitation] = Field(default_factory=list)


def _close(actual: float, expected: float, tolerance: float) -> bool:
    if expected == 0:
        return actual == 0
    return abs(actual - expected) <= abs(expected) * tolerance
