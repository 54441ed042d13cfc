"""Unit tests for Object Copy configuration."""

import pytest
from pydantic import ValidationError

from object_copy.infrastructure.config import (
    Config,
    HttpConfig,
    IdentityConfig,
    TransferConfig,
)


@pytest.mark.unit
class TestConfig:
    """Test configuration loading and validation."""

    def test_default_config(self):
        """Test default configuration values."""
        config = Config()
        assert config.transfer.chunk_size == 256 * 1024 * 1024
        assert config.transfer.concurrency == 5
        assert config.observability.log_format == "json"

    def test_identity_defaults(self):
        """Test identity configuration defaults."""
        identity = IdentityConfig()
        assert identity.auth_url == "https://identity.api.rackspacecloud.com/v2.0/tokens"
        assert identity.service_name == "cloudFiles"

    def test_api_key_is_secret(self):
        """Test the API key is not exposed in repr."""
        identity = IdentityConfig(username="me", api_key="hunter2")
        assert "hunter2" not in repr(identity)
        assert identity.api_key.get_secret_value() == "hunter2"

    def test_transfer_from_env(self, monkeypatch):
        """Test transfer settings are read from the environment."""
        monkeypatch.setenv("OBJECT_COPY_TRANSFER_CHUNK_SIZE", "1048576")
        monkeypatch.setenv("OBJECT_COPY_TRANSFER_CONCURRENCY", "8")
        config = TransferConfig()
        assert config.chunk_size == 1048576
        assert config.concurrency == 8

    @pytest.mark.parametrize("field", ["chunk_size", "concurrency"])
    def test_transfer_rejects_non_positive(self, field):
        """Test chunk size and concurrency must be positive."""
        with pytest.raises(ValidationError):
            TransferConfig(**{field: 0})

    def test_http_defaults(self):
        """Test HTTP timeouts."""
        http = HttpConfig()
        assert http.connect_timeout == 10.0
        assert http.read_timeout == 300.0
