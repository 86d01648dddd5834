"""
procurement_config -- entrypoint for approval queue configuration.

Responsibility:
    Provides ``get_queue_settings()``, which returns the thresholds the
    approval queue uses for priority, amount buckets, date ranges and
    statistics.  Without a path the built-in defaults are returned;
    with a path the ``approval_queue`` section of that YAML file is loaded
    and validated.

Architecture position:
    Configuration -- sits beside ``procurement_kernel`` and below
    ``procurement_services``.  The kernel MUST NEVER import from
    ``procurement_config``.

Failure modes:
    - ``FileNotFoundError`` -- the given settings file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``InvalidQueueSettingsError`` -- unknown keys or invalid thresholds.

Audit relevance:
    Every file-backed load emits a ``procurement_config_loaded`` log entry
    containing the source path and settings checksum, tying queue
    prioritization back to the exact configuration that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from procurement_config.loader import compute_checksum, load_queue_settings
from procurement_config.schema import DEFAULT_QUEUE_SETTINGS, QueueSettings

_logger = logging.getLogger("procurement_kernel.config")


def get_queue_settings(path: Path | str | None = None) -> QueueSettings:
    """Return approval queue settings, from ``path`` when given.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InvalidQueueSettingsError: If the settings are invalid.
    """
    if path is None:
        return DEFAULT_QUEUE_SETTINGS

    settings = load_queue_settings(Path(path))
    _logger.info(
        "procurement_config_loaded",
        extra={
            "trace_type": "PROCUREMENT_CONFIG_TRACE",
            "source": str(path),
            "checksum": compute_checksum(settings),
        },
    )
    return settings


__all__ = [
    "DEFAULT_QUEUE_SETTINGS",
    "QueueSettings",
    "get_queue_settings",
]
