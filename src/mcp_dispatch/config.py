"""Configuration management for MCP dispatch.

Two layers live here:

- ``Settings``: process settings read from the environment (server identity,
  bind address, logging, endpoint policy). Immutable after initialization.
- ``Configuration``: the extension points the dispatcher consults on every
  request. Built once during setup through ``configure()`` and never
  mutated afterwards, so concurrent requests all observe the same snapshot.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from .engine import McpEngine
from .transport import Transport, supports_transport

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(env_var: str, default: str) -> bool:
    value = os.environ.get(env_var, default).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {env_var}: {value}")


class Settings:
    """Process settings loaded from environment variables."""

    def __init__(self) -> None:
        self._defaults = {
            # Server identity reported to MCP clients
            "server_name": os.environ.get("SERVER_NAME", "mcp_server"),
            "server_version": os.environ.get("SERVER_VERSION", "0.1.0"),

            # HTTP server
            "host": os.environ.get("HOST", "0.0.0.0"),  # nosec B104 - bind all interfaces in containers
            "port": int(os.environ.get("PORT", "9400")),
            "endpoint_path": os.environ.get("MCP_ENDPOINT_PATH", "/mcp"),

            # Dispatch policy
            "post_only": _env_bool("MCP_POST_ONLY", "false"),
            "direct_json": _env_bool("MCP_DIRECT_JSON", "true"),
            "config_target": os.environ.get("MCP_CONFIG", ""),

            # Logging
            "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
            "log_dir": os.environ.get("LOG_DIR", ""),
        }

    def __getattr__(self, name: str) -> Any:
        """Get configuration value."""
        defaults = self.__dict__.get("_defaults", {})
        if name in defaults:
            return defaults[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification of settings after initialization."""
        if name in self.__dict__.get("_defaults", {}):
            raise AttributeError(f"Settings are immutable: cannot set '{name}'")
        super().__setattr__(name, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with optional default."""
        return self._defaults.get(key, default)

    def validate(self) -> List[str]:
        """Validate settings and return list of errors.

        Returns:
            List of validation error messages. Empty list means valid.
        """
        errors = []

        if not self.endpoint_path.startswith("/"):
            errors.append(f"MCP_ENDPOINT_PATH must start with '/': {self.endpoint_path}")

        if not 0 < self.port < 65536:
            errors.append(f"PORT out of range: {self.port}")

        if self.log_level not in _LOG_LEVELS:
            errors.append(f"Invalid LOG_LEVEL: {self.log_level}")

        if self.config_target and ":" not in self.config_target:
            errors.append(f"MCP_CONFIG must look like 'module:attribute': {self.config_target}")

        if self.log_dir:
            log_dir = Path(self.log_dir)
            if not log_dir.exists():
                try:
                    log_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    errors.append(f"Cannot create log directory {log_dir}: {e}")
            elif not os.access(log_dir, os.W_OK):
                errors.append(f"Log directory not writable: {log_dir}")

        return errors

    def configuration_defaults(self) -> Dict[str, Any]:
        """Values that seed a Configuration built from these settings."""
        return {
            "server_name": self.server_name,
            "server_version": self.server_version,
            "post_only": self.post_only,
            "direct_json": self.direct_json,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self._defaults.copy()

    def __repr__(self) -> str:
        return f"Settings(server_name={self.server_name}, endpoint_path={self.endpoint_path})"

    def get_startup_summary(self) -> Dict[str, Any]:
        """Get startup settings summary for logging."""
        return {
            "server_name": self.server_name,
            "server_version": self.server_version,
            "host": self.host,
            "port": self.port,
            "endpoint_path": self.endpoint_path,
            "post_only": self.post_only,
            "direct_json": self.direct_json,
            "config_target": self.config_target or "default",
            "log_level": self.log_level,
            "log_dir": self.log_dir or "console only",
        }

    @classmethod
    def load_runtime_config(cls) -> "Settings":
        """Load settings from the current environment."""
        return cls()


@dataclass(frozen=True)
class Catalog:
    """
    A tool, prompt or resource catalog.

    Either a static list of descriptors or a zero-argument provider called
    fresh on every request, which lets the available capabilities depend on
    runtime state.
    """

    items: Tuple[Any, ...] = ()
    provider: Optional[Callable[[], Optional[Iterable[Any]]]] = None

    @classmethod
    def static(cls, items: Iterable[Any]) -> "Catalog":
        return cls(items=tuple(items))

    @classmethod
    def dynamic(cls, provider: Callable[[], Optional[Iterable[Any]]]) -> "Catalog":
        return cls(provider=provider)

    @classmethod
    def coerce(cls, value: "CatalogSource") -> "Catalog":
        """
        Build a Catalog from a configuration value.

        Args:
            value: None, a Catalog, a zero-argument callable, or an iterable
                of descriptors

        Returns:
            Catalog for the value
        """
        if value is None:
            return cls()
        if isinstance(value, Catalog):
            return value
        if callable(value):
            return cls.dynamic(value)
        if isinstance(value, (str, bytes)):
            raise TypeError("Catalog items must be descriptors, not a string")
        return cls.static(value)

    @property
    def is_dynamic(self) -> bool:
        return self.provider is not None

    def resolve(self) -> List[Any]:
        """Return the descriptors for the current request."""
        if self.provider is not None:
            return list(self.provider() or [])
        return list(self.items)


CatalogSource = Union[Catalog, Sequence[Any], Callable[[], Optional[Iterable[Any]]], None]


@dataclass(frozen=True)
class Configuration:
    """
    Dispatcher extension points.

    Args:
        authenticate_with: ``request -> bool``; None allows every request
        build_context_with: ``request -> Mapping`` of extra context entries
        tools: Tool catalog (list, provider callable or Catalog)
        prompts: Prompt catalog
        resources: Resource catalog
        resources_read_handler: Handler registered for ``resources/read``
        transport: Transport class constructed with the engine per request
        response_handler: ``(response, request) -> response | None`` run last
        server_name: Server name reported by the engine
        server_version: Server version reported by the engine
        post_only: Reject non-POST requests with 405
        direct_json: Allow direct JSON-RPC handling when no transport is usable
        engine_class: Engine type instantiated per request
    """

    authenticate_with: Optional[Callable[[Any], Any]] = None
    build_context_with: Optional[Callable[[Any], Any]] = None
    tools: CatalogSource = None
    prompts: CatalogSource = None
    resources: CatalogSource = None
    resources_read_handler: Optional[Callable[..., Any]] = None
    transport: Optional[Type[Transport]] = None
    response_handler: Optional[Callable[[Any, Any], Any]] = None
    server_name: str = "mcp_server"
    server_version: str = "0.1.0"
    post_only: bool = False
    direct_json: bool = True
    engine_class: type = McpEngine
    transport_supported: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        for name in ("tools", "prompts", "resources"):
            object.__setattr__(self, name, Catalog.coerce(getattr(self, name)))
        object.__setattr__(
            self,
            "transport_supported",
            supports_transport(self.transport, self.engine_class),
        )

    @property
    def mode(self) -> str:
        """How requests are handled: ``transport``, ``direct`` or ``unavailable``."""
        if self.transport_supported:
            return "transport"
        if self.direct_json:
            return "direct"
        return "unavailable"

    def replace(self, **changes: Any) -> "Configuration":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


def configure(settings: Optional[Settings] = None, **options: Any) -> Configuration:
    """
    Build the dispatcher configuration.

    Call once during application setup. Values from ``settings`` fill in
    server identity and dispatch policy unless passed explicitly.

    Args:
        settings: Optional environment settings to seed defaults from
        **options: Configuration fields

    Returns:
        Frozen Configuration instance
    """
    if settings is not None:
        for key, value in settings.configuration_defaults().items():
            options.setdefault(key, value)

    config = Configuration(**options)

    logger.info(
        f"Dispatch configured: mode={config.mode}, "
        f"auth={'enabled' if config.authenticate_with else 'disabled'}, "
        f"post_only={config.post_only}"
    )
    return config
