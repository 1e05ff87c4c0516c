"""Raw form input -> validated ShipmentData."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, TypeVar

from pydantic import ValidationError

from freightdesk.contracts import ContainerType, Currency, Incoterm, ShipmentData, ShippingMode


E = TypeVar("E", bound=Enum)


class ShipmentInputError(ValueError):
    """Raised when raw shipment parameters cannot form a valid request."""


_ENUM_FIELDS: dict[str, type[Enum]] = {
    "shipping_mode": ShippingMode,
    "currency": Currency,
    "incoterm": Incoterm,
    "container_type": ContainerType,
}

_TEXT_FIELDS = ("factory_location", "product_description", "origin_port")
_NUMERIC_FIELDS = ("weight", "volume", "invoice_amount")


def coerce_enum(enum_cls: type[E], raw: Any) -> E:
    """Resolve an enum from its member, name or label, case-insensitively."""
    if isinstance(raw, enum_cls):
        return raw
    text = " ".join(str(raw or "").split())
    if not text:
        raise ShipmentInputError(f"{enum_cls.__name__} is required.")
    folded = text.casefold()
    for member in enum_cls:
        if folded in {member.name.casefold(), str(member.value).casefold()}:
            return member
    allowed = ", ".join(member.name for member in enum_cls)
    raise ShipmentInputError(f"Unknown {enum_cls.__name__} '{text}'. Expected one of: {allowed}.")


def parse_shipment(raw: Mapping[str, Any]) -> ShipmentData:
    """Normalize and validate form-style input; enum fields accept names or labels."""
    payload: dict[str, Any] = {}
    for field_name, enum_cls in _ENUM_FIELDS.items():
        payload[field_name] = coerce_enum(enum_cls, raw.get(field_name))
    for field_name in _TEXT_FIELDS:
        payload[field_name] = " ".join(str(raw.get(field_name) or "").split())
    for field_name in _NUMERIC_FIELDS:
        payload[field_name] = raw.get(field_name)

    unexpected = sorted(set(raw) - set(payload))
    if unexpected:
        raise ShipmentInputError(f"Unexpected shipment fields: {', '.join(unexpected)}.")

    try:
        return ShipmentData.model_validate(payload)
    except ValidationError as exc:
        raise ShipmentInputError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "shipment"
        problems.append(f"{location}: {error['msg']}")
    return "Invalid shipment: " + "; ".join(problems)
