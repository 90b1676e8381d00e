"""Index configuration loading.

The backing index is created lazily on first use. Its body can come from a
YAML file that holds the same top-level keys as the create-index API::

    settings:
      analysis:
        analyzer:
          customAnalyzer:
            type: custom
            tokenizer: standard
    mappings:
      properties:
        text_field:
          type: text
          analyzer: customAnalyzer

Whatever the file says, the index always gets mappings for the fields the
backend itself owns (``tags``, ``expiresAt``, ``content``) unless the file
maps them explicitly.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from elasticcache.core.entry import CONTENT_FIELD, EXPIRES_AT_FIELD, TAGS_FIELD
from elasticcache.core.errors import ConfigurationError, InvalidConfigError, MissingConfigError

ALLOWED_KEYS = frozenset({"settings", "mappings", "aliases"})

OWNED_PROPERTIES: dict[str, dict[str, Any]] = {
    TAGS_FIELD: {"type": "keyword"},
    EXPIRES_AT_FIELD: {"type": "long"},
    CONTENT_FIELD: {"type": "text", "index": False},
}


def load_index_configuration(path: Path | str | None) -> dict[str, Any]:
    """Parse the YAML index configuration at ``path``.

    ``None`` and empty files mean "no configuration" and yield ``{}``.

    Raises:
        MissingConfigError: The file does not exist.
        ConfigurationError: The file cannot be read or is not valid YAML.
        InvalidConfigError: The document is not a mapping of allowed keys.
    """
    if path is None or str(path) == "":
        return {}

    config_path = Path(path)
    if not config_path.is_file():
        raise MissingConfigError(
            "index_configuration",
            f"Index configuration file not found: {config_path}",
        )

    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read index configuration {config_path}: {e}", cause=e
        ) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in index configuration {config_path}: {e}", cause=e
        ) from e

    if data is None:
        return {}
    return validate_index_configuration(data, source=str(config_path))


def validate_index_configuration(data: Any, *, source: str = "<inline>") -> dict[str, Any]:
    """Check the shape of an index configuration mapping."""
    if not isinstance(data, Mapping):
        raise InvalidConfigError(
            "index_configuration",
            source,
            f"Index configuration {source} must be a mapping, got {type(data).__name__}",
        )

    unknown = sorted(set(data) - ALLOWED_KEYS)
    if unknown:
        raise InvalidConfigError(
            "index_configuration",
            source,
            f"Index configuration {source} has unsupported keys: {', '.join(map(str, unknown))}",
        )

    for key, value in data.items():
        if value is not None and not isinstance(value, Mapping):
            raise InvalidConfigError(
                f"index_configuration.{key}",
                value,
                f"Index configuration {source}: '{key}' must be a mapping",
            )

    return {key: dict(value) for key, value in data.items() if value is not None}


def build_index_body(configuration: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge the owned field mappings into ``configuration``.

    Properties the configuration already declares are left untouched.
    """
    body: dict[str, Any] = copy.deepcopy(dict(configuration or {}))
    mappings = body.setdefault("mappings", {})
    properties = mappings.setdefault("properties", {})
    for name, mapping in OWNED_PROPERTIES.items():
        properties.setdefault(name, dict(mapping))
    return body


__all__ = [
    "ALLOWED_KEYS",
    "OWNED_PROPERTIES",
    "load_index_configuration",
    "validate_index_configuration",
    "build_index_body",
]
