"""
Unit tests for shared configuration and error handling.
"""

from shared.config import get_config
from shared.errors import OfflineError, ServerError, TransferError, TransportError
from shared.logging import clear_context, set_request_id


class TestConfig:
    """Test cases for service configuration."""

    def test_defaults(self):
        config = get_config("sync", 8090)

        assert config.service_name == "sync"
        assert config.sync_enabled is True
        assert config.cache_default_ttl == 3600.0
        assert config.cache_backend == "sqlite"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ACCESS_SYNC_ENABLED", "false")
        monkeypatch.setenv("ACCESS_FORCE_OFFLINE", "true")
        monkeypatch.setenv("ACCESS_LOG_LENGTH", "20")

        config = get_config("sync", 8090)

        assert config.sync_enabled is False
        assert config.force_offline is True
        assert config.log_length == 20


class TestErrors:
    """Test cases for the exception hierarchy."""

    def test_transient_flags(self):
        assert TransportError().transient is True
        assert OfflineError().transient is False
        assert ServerError("x").transient is False
        assert TransferError().transient is False

    def test_to_response_carries_request_id(self):
        set_request_id("req-42")
        try:
            response = ServerError("invalidtoken", "Invalid token", details={"method": "m"}).to_response()
        finally:
            clear_context()

        assert response.request_id == "req-42"
        assert response.code == "SERVER_ERROR"
        assert response.message == "invalidtoken: Invalid token"
        assert response.details == {"method": "m"}
