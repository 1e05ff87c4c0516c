"""Map collaborator errors to user-facing failure categories."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NEWS_FETCH_FAILED = "news_fetch_failed"


QUOTA_EXCEEDED_MESSAGE = (
    "Network capacity reached. Our systems are currently processing a high volume of "
    "requests. Please wait 10 seconds and try again."
)
SERVICE_UNAVAILABLE_MESSAGE = (
    "The analysis service is currently unavailable. Please verify your connection "
    "or try again later."
)
NEWS_FETCH_FAILED_MESSAGE = "Shipping news could not be retrieved."

_RATE_LIMIT_TOKEN = "429"
_EXHAUSTED_MARKER = "RESOURCE_EXHAUSTED"


class RequestFailure(BaseModel):
    """A classified failure. Holds text only, never the raw exception."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    detail: str = ""

    @property
    def user_visible(self) -> bool:
        return self.kind is not ErrorKind.NEWS_FETCH_FAILED


def is_quota_error(exc: BaseException) -> bool:
    """Best-effort inspection of the message and the status/code fields SDK errors carry."""
    message = _safe_str(exc)
    if _RATE_LIMIT_TOKEN in message or _EXHAUSTED_MARKER in message.upper():
        return True
    status = getattr(exc, "status", None)
    if isinstance(status, str) and status.strip().upper() == _EXHAUSTED_MARKER:
        return True
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and value == 429:
            return True
    return False


def classify_analysis_failure(exc: BaseException) -> RequestFailure:
    if is_quota_error(exc):
        return RequestFailure(
            kind=ErrorKind.QUOTA_EXCEEDED,
            message=QUOTA_EXCEEDED_MESSAGE,
            detail=_detail(exc),
        )
    return RequestFailure(
        kind=ErrorKind.SERVICE_UNAVAILABLE,
        message=SERVICE_UNAVAILABLE_MESSAGE,
        detail=_detail(exc),
    )


def news_failure(exc: BaseException) -> RequestFailure:
    return RequestFailure(
        kind=ErrorKind.NEWS_FETCH_FAILED,
        message=NEWS_FETCH_FAILED_MESSAGE,
        detail=_detail(exc),
    )


def _detail(exc: BaseException, max_len: int = 200) -> str:
    text = f"{type(exc).__name__}: {_safe_str(exc)}".strip()
    if len(text) > max_len:
        return text[: max_len - 1] + "…"
    return text


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:  # noqa: BLE001
        return ""
