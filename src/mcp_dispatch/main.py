"""
MCP Dispatch - Main Entry Point

Sets up logging, loads the dispatcher configuration and serves the HTTP
application with uvicorn.

Usage:
    mcp-dispatch --config myapp.mcp:config
    python -m mcp_dispatch.main --port 9400

The ``--config`` target (or ``MCP_CONFIG``) names a ``module:attribute``
holding a Configuration, or a zero-argument callable returning one.
"""

import argparse
import dataclasses
import importlib
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from .config import Configuration, Settings, configure
from .http_app import create_app


def setup_logging(settings: Settings, level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging configuration.

    Logs go to stderr; when a log directory is configured a rotating file
    handler is added as well.

    Args:
        settings: Process settings
        level: Log level overriding the settings value

    Returns:
        Logger instance for the main module
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(console_handler)

    if settings.log_dir:
        log_file = os.path.join(settings.log_dir, "mcp-dispatch.log")
        try:
            Path(settings.log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
                )
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Could not set up file logging: {e}")

    return logging.getLogger(__name__)


def load_configuration(target: Optional[str], settings: Settings) -> Configuration:
    """
    Load the dispatcher configuration.

    Args:
        target: ``module:attribute`` naming a Configuration or a factory
            returning one; None builds an empty configuration
        settings: Settings supplying identity and policy defaults

    Returns:
        Configuration instance

    Raises:
        ValueError: If the target is malformed
        TypeError: If the target does not resolve to a Configuration
    """
    if not target:
        return configure(settings)

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Configuration target must look like 'module:attribute': {target}")

    value = getattr(importlib.import_module(module_name), attribute)
    if callable(value):
        value = value()
    if not isinstance(value, Configuration):
        raise TypeError(
            f"{target} resolved to {type(value).__name__}, expected Configuration"
        )

    # Settings only fill in fields the target left at their defaults
    overrides = {
        key: setting
        for key, setting in settings.configuration_defaults().items()
        if getattr(value, key) == _field_default(key)
    }
    return value.replace(**overrides) if overrides else value


def _field_default(name: str):
    for f in dataclasses.fields(Configuration):
        if f.name == name:
            return f.default
    raise KeyError(name)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mcp-dispatch", description="Serve an MCP engine over HTTP"
    )
    parser.add_argument("--config", help="module:attribute of the Configuration to serve")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point.

    Validates settings, loads the configuration and runs uvicorn. Exits with
    status 1 when settings are invalid or the configuration cannot be
    loaded.
    """
    args = parse_args(argv)
    try:
        settings = Settings.load_runtime_config()
    except ValueError as e:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        logging.getLogger(__name__).critical(f"Invalid environment settings: {e}")
        sys.exit(1)
    logger = setup_logging(settings, args.log_level)

    errors = settings.validate()
    if errors:
        logger.critical("Settings validation failed:")
        for error in errors:
            logger.critical(f"  - {error}")
        sys.exit(1)

    summary = settings.get_startup_summary()
    logger.info(f"Starting MCP Dispatch: {summary}")

    try:
        config = load_configuration(args.config or settings.config_target, settings)
    except Exception as e:
        logger.critical(f"Failed to load configuration: {e}", exc_info=True)
        sys.exit(1)

    app = create_app(config, settings)
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=(args.log_level or settings.log_level).lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
