"""Runtime configuration for the widget transfer MCP server.

Reads settings from CLI args, environment variables, .env files, and the
YAML config file.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WIDGET_REGISTRY_PATH: Registry JSON file (required)
    WIDGET_TRANSFER_READ_ONLY: Hide write tools (optional, default: false)
    WIDGET_TRANSFER_MAX_BYTES: Largest accepted document (optional,
        default: 10000000)
    WIDGET_TRANSFER_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .config_schema import (
    DEFAULT_ALLOWED_MIME_TYPES,
    DEFAULT_MAX_DOCUMENT_BYTES,
    UnifiedConfig,
)

logger = logging.getLogger(__name__)


@dataclass
class Config:
    registry_path: str
    read_only: bool = False
    debug: bool = False
    allowed_mime_types: tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES
    max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES
    generator_version: str | None = None
    include_inactive: bool = True


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Raises:
        ValueError: If the registry path is empty or points at a directory,
            or the size limit is not positive.
    """
    config.registry_path = config.registry_path.strip()

    if not config.registry_path:
        raise ValueError(
            "Registry path cannot be empty. Set WIDGET_REGISTRY_PATH "
            "environment variable."
        )

    if Path(config.registry_path).expanduser().is_dir():
        raise ValueError(
            f"Invalid registry path '{config.registry_path}': "
            "is a directory, expected a JSON file"
        )

    if config.max_document_bytes < 1:
        raise ValueError(
            f"Invalid max document size {config.max_document_bytes}: "
            "must be a positive number of bytes"
        )

    if not config.allowed_mime_types:
        raise ValueError("At least one allowed MIME type is required")

    if config.read_only:
        logger.info("Read-only mode: write tools are disabled")


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    registry_path: str | None = None,
    read_only: bool = False,
    debug: bool = False,
    yaml_config: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > YAML config > built-in default

    The caller is responsible for calling ``load_dotenv()`` first so that
    .env values are visible through ``os.getenv()``.

    Args:
        registry_path: Override registry file path.
        read_only: Hide write tools (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_config: Parsed YAML config; defaults apply when ``None``.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If no registry path is configured, or a value is
            invalid.
    """
    unified = yaml_config or UnifiedConfig()

    # --- String fields: CLI > env > YAML > error ---

    final_path = (
        registry_path
        or os.getenv("WIDGET_REGISTRY_PATH")
        or unified.registry.path
    )
    if not final_path:
        raise ValueError(
            "Widget registry path not found. Set WIDGET_REGISTRY_PATH "
            "environment variable, pass --registry CLI argument, or add "
            "'registry: {path: ...}' to config.yml."
        )

    # --- Boolean fields: CLI > env > YAML > default ---

    if read_only:
        final_read_only = True
    else:
        env_read_only = _get_bool_env("WIDGET_TRANSFER_READ_ONLY")
        if env_read_only is not None:
            final_read_only = env_read_only
        else:
            final_read_only = unified.server.read_only

    if debug:
        final_debug = True
    else:
        final_debug = bool(_get_bool_env("WIDGET_TRANSFER_DEBUG"))

    # --- Numeric fields: env > YAML > default ---

    max_bytes_raw = os.getenv("WIDGET_TRANSFER_MAX_BYTES")
    if max_bytes_raw is not None:
        try:
            final_max_bytes = int(max_bytes_raw)
        except ValueError:
            raise ValueError(
                f"Invalid WIDGET_TRANSFER_MAX_BYTES '{max_bytes_raw}': "
                "must be a positive number"
            ) from None
    else:
        final_max_bytes = unified.transfer.max_document_bytes

    config = Config(
        registry_path=final_path,
        read_only=final_read_only,
        debug=final_debug,
        allowed_mime_types=tuple(unified.transfer.allowed_mime_types),
        max_document_bytes=final_max_bytes,
        generator_version=unified.transfer.generator_version,
        include_inactive=unified.transfer.include_inactive,
    )

    validate_config(config)

    return config
