"""
Library configuration file: {storage_root}/config.yaml

Holds API keys (literal or ${ENV_VAR}), the batch provider's connection
settings, and the defaults used by batch submission and book pipelines.
A missing file means defaults; a partial file is filled in by the schema.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Tuple

import pydantic
import yaml

from infra.errors import ValidationError
from .schemas import LibraryConfig


CONFIG_FILENAME = "config.yaml"


class LibraryConfigManager:
    """
    Reads and writes config.yaml for one library.

    Usage:
        manager = LibraryConfigManager(storage_root)
        config = manager.load()
        manager.set_value("defaults.ocr_limit", "200")
    """

    def __init__(self, storage_root: Path):
        self.storage_root = Path(storage_root).expanduser().resolve()
        self.config_path = self.storage_root / CONFIG_FILENAME

    def exists(self) -> bool:
        return self.config_path.exists()

    def load(self) -> LibraryConfig:
        if not self.config_path.exists():
            return LibraryConfig.with_defaults()

        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return LibraryConfig.model_validate(data)

    def save(self, config: LibraryConfig) -> None:
        """Write config.yaml through a temp file so readers never see half a file."""
        self.storage_root.mkdir(parents=True, exist_ok=True)
        data = config.model_dump(exclude_none=True)

        temp_path = self.config_path.with_suffix('.yaml.tmp')
        with open(temp_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        os.replace(temp_path, self.config_path)

    def update(self, updates: Dict[str, Any]) -> LibraryConfig:
        """Deep-merge nested updates, validate, and persist."""
        data = self.load().model_dump()
        _deep_merge(data, updates)

        new_config = LibraryConfig.model_validate(data)
        self.save(new_config)
        return new_config

    def set_value(self, dotted_key: str, raw_value: str) -> Tuple[LibraryConfig, Any]:
        """
        Set one setting from its dotted name and a command-line string.

        Returns the saved config and the value as stored. Raises
        ValidationError for top-level keys, unknown sections, or values
        the schema rejects.
        """
        parts = dotted_key.split('.')
        if len(parts) < 2:
            raise ValidationError(
                f"Cannot set top-level key '{dotted_key}' directly",
                hint="use nested keys like 'defaults.ocr_limit' or 'provider.max_retries'",
            )

        section = parts[0]
        if section not in LibraryConfig.model_fields:
            raise ValidationError(f"Unknown config section '{section}'",
                                  sections=", ".join(LibraryConfig.model_fields))

        updates: Dict[str, Any] = {}
        current = updates
        for part in parts[:-1]:
            current[part] = {}
            current = current[part]
        current[parts[-1]] = parse_config_value(raw_value)

        try:
            config = self.update(updates)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid value for {dotted_key}: {e.errors()[0]['msg']}")

        stored: Any = config.model_dump()
        for part in parts:
            stored = stored.get(part) if isinstance(stored, dict) else None
        return config, stored

    def set_api_key(self, key_name: str, value: str) -> None:
        config = self.load()
        config.api_keys[key_name] = value
        self.save(config)


def parse_config_value(value: str) -> Any:
    """true/false, ints, floats and JSON arrays/objects; anything else stays a string."""
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'

    try:
        return float(value) if '.' in value else int(value)
    except ValueError:
        pass

    if value[:1] in ('[', '{'):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def _deep_merge(base: dict, updates: dict) -> None:
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_library_config(storage_root: Path) -> LibraryConfig:
    return LibraryConfigManager(storage_root).load()
