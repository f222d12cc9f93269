"""
Unit tests for the MCP dispatch configuration module.
"""

import dataclasses
import os
from unittest.mock import Mock, patch

import pytest

from mcp_dispatch.config import Catalog, Configuration, Settings, configure
from mcp_dispatch.engine import McpEngine


class TestSettings:
    """Test the environment-driven settings."""

    @patch.dict(os.environ, {}, clear=True)
    def test_settings_defaults(self):
        """Test settings with default values."""
        settings = Settings()

        assert settings.server_name == "mcp_server"
        assert settings.server_version == "0.1.0"
        assert settings.host == "0.0.0.0"
        assert settings.port == 9400
        assert settings.endpoint_path == "/mcp"
        assert settings.post_only is False
        assert settings.direct_json is True
        assert settings.config_target == ""
        assert settings.log_level == "INFO"
        assert settings.log_dir == ""

    @patch.dict(
        os.environ,
        {
            "SERVER_NAME": "custom",
            "SERVER_VERSION": "2.0.0",
            "PORT": "8080",
            "MCP_ENDPOINT_PATH": "/rpc",
            "MCP_POST_ONLY": "yes",
            "MCP_DIRECT_JSON": "off",
            "MCP_CONFIG": "myapp.mcp:config",
            "LOG_LEVEL": "debug",
        },
        clear=True,
    )
    def test_settings_from_environment(self):
        """Test settings from environment variables."""
        settings = Settings()

        assert settings.server_name == "custom"
        assert settings.server_version == "2.0.0"
        assert settings.port == 8080
        assert settings.endpoint_path == "/rpc"
        assert settings.post_only is True
        assert settings.direct_json is False
        assert settings.config_target == "myapp.mcp:config"
        assert settings.log_level == "DEBUG"

    @patch.dict(os.environ, {"MCP_POST_ONLY": "maybe"}, clear=True)
    def test_invalid_boolean_raises(self):
        with pytest.raises(ValueError, match="Invalid boolean value for MCP_POST_ONLY"):
            Settings()

    @patch.dict(os.environ, {}, clear=True)
    def test_settings_are_immutable(self):
        settings = Settings()

        with pytest.raises(AttributeError, match="immutable"):
            settings.port = 1234
        assert settings.port == 9400

    @patch.dict(os.environ, {}, clear=True)
    def test_unknown_attribute_raises(self):
        settings = Settings()

        with pytest.raises(AttributeError):
            settings.not_a_setting

    @patch.dict(os.environ, {}, clear=True)
    def test_get_and_to_dict(self):
        settings = Settings()

        assert settings.get("port") == 9400
        assert settings.get("missing", "fallback") == "fallback"
        data = settings.to_dict()
        data["port"] = 1
        assert settings.port == 9400

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_defaults_is_clean(self):
        assert Settings().validate() == []

    @patch.dict(
        os.environ,
        {
            "MCP_ENDPOINT_PATH": "mcp",
            "PORT": "70000",
            "LOG_LEVEL": "LOUD",
            "MCP_CONFIG": "no_colon",
        },
        clear=True,
    )
    def test_validate_reports_errors(self):
        errors = Settings().validate()

        assert any("MCP_ENDPOINT_PATH" in e for e in errors)
        assert any("PORT" in e for e in errors)
        assert any("LOG_LEVEL" in e for e in errors)
        assert any("MCP_CONFIG" in e for e in errors)

    def test_validate_creates_log_dir(self, tmp_path, monkeypatch):
        log_dir = tmp_path / "logs"
        monkeypatch.setenv("LOG_DIR", str(log_dir))

        assert Settings().validate() == []
        assert log_dir.is_dir()

    def test_configuration_defaults(self, mock_config):
        defaults = Settings().configuration_defaults()

        assert defaults == {
            "server_name": "test-mcp-dispatch",
            "server_version": "0.0.1-test",
            "post_only": False,
            "direct_json": True,
        }

    def test_startup_summary(self, mock_config):
        summary = Settings().get_startup_summary()

        assert summary["server_name"] == "test-mcp-dispatch"
        assert summary["config_target"] == "default"
        assert summary["log_dir"] == "console only"


class TestCatalog:
    """Test static and provider catalogs."""

    def test_none_is_empty(self):
        assert Catalog.coerce(None).resolve() == []

    def test_static_list(self):
        catalog = Catalog.coerce(["a", "b"])

        assert not catalog.is_dynamic
        assert catalog.resolve() == ["a", "b"]

    def test_provider_called_per_resolve(self):
        provider = Mock(side_effect=[["first"], ["second"]])
        catalog = Catalog.coerce(provider)

        assert catalog.is_dynamic
        assert catalog.resolve() == ["first"]
        assert catalog.resolve() == ["second"]
        assert provider.call_count == 2

    def test_provider_returning_none(self):
        assert Catalog.dynamic(lambda: None).resolve() == []

    def test_catalog_passes_through(self):
        catalog = Catalog.static(["x"])
        assert Catalog.coerce(catalog) is catalog

    def test_string_rejected(self):
        with pytest.raises(TypeError):
            Catalog.coerce("tool")

    def test_resolve_returns_copy(self):
        catalog = Catalog.static(["x"])
        catalog.resolve().append("y")
        assert catalog.resolve() == ["x"]


class TestConfiguration:
    """Test the dispatcher configuration."""

    def test_defaults(self):
        config = Configuration()

        assert config.authenticate_with is None
        assert config.build_context_with is None
        assert config.tools.resolve() == []
        assert config.prompts.resolve() == []
        assert config.resources.resolve() == []
        assert config.resources_read_handler is None
        assert config.transport is None
        assert config.response_handler is None
        assert config.server_name == "mcp_server"
        assert config.server_version == "0.1.0"
        assert config.post_only is False
        assert config.direct_json is True
        assert config.engine_class is McpEngine
        assert config.transport_supported is False
        assert config.mode == "direct"

    def test_authenticate_with_set(self):
        predicate = lambda request: True
        assert Configuration(authenticate_with=predicate).authenticate_with is predicate

    def test_build_context_with_set(self):
        builder = lambda request: {"user": {"id": 1}, "org": "test"}
        assert Configuration(build_context_with=builder).build_context_with is builder

    def test_resources_read_handler_set(self):
        handler = lambda params: [{"uri": params["uri"], "text": "test"}]
        assert Configuration(resources_read_handler=handler).resources_read_handler is handler

    def test_catalogs_normalized(self):
        tool = object()
        config = Configuration(tools=[tool], prompts=lambda: ["p"])

        assert isinstance(config.tools, Catalog)
        assert config.tools.resolve() == [tool]
        assert config.prompts.is_dynamic
        assert config.prompts.resolve() == ["p"]

    def test_frozen(self):
        config = Configuration()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.post_only = True

    def test_transport_with_handle_request_is_supported(self):
        class GoodTransport:
            def __init__(self, server):
                self.server = server

            def handle_request(self, request):
                return 200, {}, []

        config = Configuration(transport=GoodTransport)

        assert config.transport_supported is True
        assert config.mode == "transport"

    def test_transport_without_handle_request_falls_back(self):
        class LegacyTransport:
            def __init__(self, server):
                self.server = server

        config = Configuration(transport=LegacyTransport)

        assert config.transport is LegacyTransport
        assert config.transport_supported is False
        assert config.mode == "direct"

    def test_engine_without_transport_support_falls_back(self):
        class LegacyEngine(McpEngine):
            supports_transport = False

        class GoodTransport:
            def __init__(self, server):
                pass

            def handle_request(self, request):
                return 200, {}, []

        config = Configuration(transport=GoodTransport, engine_class=LegacyEngine)
        assert config.transport_supported is False

    def test_mode_unavailable(self):
        assert Configuration(direct_json=False).mode == "unavailable"

    def test_replace_recomputes_derived_fields(self):
        class GoodTransport:
            def __init__(self, server):
                pass

            def handle_request(self, request):
                return 200, {}, []

        config = Configuration()
        updated = config.replace(transport=GoodTransport, post_only=True)

        assert config.transport_supported is False
        assert updated.transport_supported is True
        assert updated.post_only is True


class TestConfigure:
    def test_configure_returns_configuration(self):
        config = configure(post_only=True)

        assert isinstance(config, Configuration)
        assert config.post_only is True

    def test_configure_seeds_from_settings(self, mock_config):
        config = configure(Settings(), server_version="9.9.9")

        assert config.server_name == "test-mcp-dispatch"
        assert config.server_version == "9.9.9"
