"""Tests for analysis failure classification."""

from __future__ import annotations

from freightdesk.failures import (
    QUOTA_EXCEEDED_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    ErrorKind,
    classify_analysis_failure,
    is_quota_error,
    news_failure,
)


class _StatusError(Exception):
    def __init__(self, message: str, *, status: object = None, code: object = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


def test_message_with_rate_limit_code_is_quota_exceeded() -> None:
    failure = classify_analysis_failure(RuntimeError("HTTP 429 Too Many Requests"))

    assert failure.kind is ErrorKind.QUOTA_EXCEEDED
    assert failure.message == QUOTA_EXCEEDED_MESSAGE
    assert "wait 10 seconds" in failure.message
    assert failure.user_visible is True


def test_resource_exhausted_status_is_quota_exceeded() -> None:
    assert is_quota_error(_StatusError("quota", status="RESOURCE_EXHAUSTED")) is True
    assert is_quota_error(_StatusError("boom", code=429)) is True


def test_unrelated_error_is_service_unavailable() -> None:
    failure = classify_analysis_failure(ConnectionError("connection reset by peer"))

    assert failure.kind is ErrorKind.SERVICE_UNAVAILABLE
    assert failure.message == SERVICE_UNAVAILABLE_MESSAGE
    assert failure.detail == "ConnectionError: connection reset by peer"


def test_other_status_codes_are_not_quota() -> None:
    assert is_quota_error(_StatusError("server error", status="INTERNAL", code=500)) is False


def test_unprintable_error_falls_back_to_service_unavailable() -> None:
    class _Broken(Exception):
        def __str__(self) -> str:
            raise RuntimeError("no text")

    failure = classify_analysis_failure(_Broken())
    assert failure.kind is ErrorKind.SERVICE_UNAVAILABLE


def test_news_failure_is_not_user_visible() -> None:
    failure = news_failure(TimeoutError("read timed out"))

    assert failure.kind is ErrorKind.NEWS_FETCH_FAILED
    assert failure.user_visible is False
    assert "read timed out" in failure.detail
