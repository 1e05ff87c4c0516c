"""Free-text tracking identifier classification and lookup URL building."""

from __future__ import annotations

from enum import Enum
import re
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict


CONTAINER_CODE_PATTERN = re.compile(r"^[A-Z]{4}[0-9]{7}$")

CONTAINER_TRACKING_URL = "https://www.track-trace.com/container/{identifier}"
VESSEL_TRACKING_URL = "https://www.vesselfinder.com/vessels?{query}"


class LookupKind(str, Enum):
    CONTAINER = "container"
    VESSEL = "vessel"


class TrackingLookup(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: LookupKind
    identifier: str
    url: str


def classify_identifier(identifier: str | None) -> LookupKind | None:
    """ISO container-code shaped ids route to container tracking, anything else to vessels.

    The identifier is matched as entered (uppercased only): padded or
    non-ASCII-digit input is a vessel name.
    """
    if not identifier:
        return None
    if CONTAINER_CODE_PATTERN.fullmatch(identifier.upper()):
        return LookupKind.CONTAINER
    return LookupKind.VESSEL


def build_tracking_lookup(identifier: str | None) -> TrackingLookup | None:
    kind = classify_identifier(identifier)
    if kind is None or identifier is None:
        return None
    if kind is LookupKind.CONTAINER:
        url = CONTAINER_TRACKING_URL.format(identifier=quote(identifier, safe=""))
    else:
        url = VESSEL_TRACKING_URL.format(query=urlencode({"name": identifier}))
    return TrackingLookup(kind=kind, identifier=identifier, url=url)
