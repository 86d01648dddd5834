"""
Configuration Loader (``procurement_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses its ``approval_queue`` section into a
typed ``QueueSettings`` instance.  Runtime callers go through
``procurement_config.get_queue_settings()``.

Invariants enforced
-------------------
* Unknown keys are rejected; a typo never silently falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``InvalidQueueSettingsError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import QueueSettings
from procurement_kernel.exceptions import InvalidQueueSettingsError

QUEUE_SECTION = "approval_queue"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_queue_settings(data: dict[str, Any] | None) -> QueueSettings:
    """
    Parse ``QueueSettings`` from the ``approval_queue`` mapping.

    Missing keys take their defaults.  Unknown keys raise.
    """
    if data is None:
        return QueueSettings()
    if not isinstance(data, dict):
        raise InvalidQueueSettingsError(
            f"'{QUEUE_SECTION}' must be a mapping, got {type(data).__name__}"
        )

    known = {f.name for f in fields(QueueSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidQueueSettingsError(f"unknown keys: {unknown}")

    return QueueSettings.from_dict(data)


def load_queue_settings(path: Path) -> QueueSettings:
    """Load and parse the ``approval_queue`` section of a YAML file."""
    document = load_yaml_file(path)
    return parse_queue_settings(document.get(QUEUE_SECTION))


def compute_checksum(settings: QueueSettings | dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical settings always produce identical checksums.
    """
    data = settings.as_dict() if isinstance(settings, QueueSettings) else settings
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
