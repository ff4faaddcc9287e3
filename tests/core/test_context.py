"""Tests for logging context and sensitive-data masking."""

from brandcoach.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_user_id,
    set_request_id,
)
from brandcoach.core.logging import filter_sensitive_data


class TestRequestContext:
    """Tests for context binding."""

    def test_binds_and_restores(self) -> None:
        clear_context()

        with RequestContext(request_id="req-1", user_id="user-1"):
            assert get_context() == {"request_id": "req-1", "user_id": "user-1"}

        assert get_user_id() is None
        assert get_context() == {}

    def test_generates_request_id(self) -> None:
        clear_context()
        request_id = set_request_id()

        assert get_context()["request_id"] == request_id
        clear_context()


class TestFilterSensitiveData:
    """Tests for the masking processor."""

    def test_masks_sensitive_keys(self) -> None:
        event = filter_sensitive_data(
            None,
            "info",
            {"event": "learner_enrolled", "token": "abcdefgh", "phone": "123"},
        )

        assert event["event"] == "learner_enrolled"
        assert event["token"] == "ab****gh"
        assert event["phone"] == "***"

    def test_masks_nested_values(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"headers": {"authorization": "Bearer xyz123"}}
        )

        assert event["headers"]["authorization"].startswith("Be")
        assert "xyz" not in event["headers"]["authorization"]
