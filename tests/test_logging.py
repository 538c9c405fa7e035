"""Tests for the logging processors."""

from app.core.config import settings
from app.core.logging import add_service_context


class TestServiceContext:

    def test_identity_added(self):
        event = add_service_context(None, "info", {"event": "Problem recorded"})

        assert event["service"] == settings.SERVICE_NAME
        assert event["version"] == settings.APP_VERSION
        assert event["environment"] == "test"
        assert event["event"] == "Problem recorded"

    def test_explicit_keys_kept(self):
        event = add_service_context(None, "info", {"event": "x", "service": "content-generator"})

        assert event["service"] == "content-generator"
