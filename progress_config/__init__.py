"""
progress_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files
    or environment variables directly.  YAML parsing is internal.

Architecture position:
    Configuration -- sits above ``progress_kernel`` and
    ``progress_engines`` and below ``progress_services``.  Engines MUST
    NEVER import from ``progress_config``; ``bridges`` translates parsed
    settings into engine inputs.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``PROGRESS_CONFIG_TRACE`` log entry with the settings id, version and
    checksum, tying each recompute to the settings that governed it.
"""

from __future__ import annotations

from pathlib import Path

from progress_config.loader import load_yaml_file, parse_settings
from progress_config.schema import EngineSettings, HealthPolicyDef, RecomputeDef
from progress_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default settings file shipped with the package
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_settings(config_path: Path | str | None = None) -> EngineSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Override path to a settings YAML file.  Defaults to
            the bundled ``sets/default.yaml``.

    Returns:
        EngineSettings -- frozen, validated settings.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If the settings fail validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "PROGRESS_CONFIG_TRACE",
        extra={
            "trace_type": "PROGRESS_CONFIG_TRACE",
            "settings_id": settings.settings_id,
            "settings_version": settings.version,
            "checksum": settings.checksum,
            "settings_path": str(path),
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "HealthPolicyDef",
    "RecomputeDef",
    "get_active_settings",
]
