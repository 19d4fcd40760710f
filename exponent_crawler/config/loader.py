"""Configuration loading helpers for the Exponent crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import CrawlConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
DEFAULT_CONFIG_FILENAME = "crawl_config.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("EXPONENT_CRAWLER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def default_config_path(self) -> Path:
        return self.data_dir / DEFAULT_CONFIG_FILENAME


class ConfigRepository:
    """Load, merge and persist crawl configuration files."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()

    def load(
        self,
        path: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> CrawlConfig:
        """Return the validated configuration.

        ``path`` defaults to ``data/crawl_config.yaml`` and may be absent, in
        which case built-in defaults apply. ``overrides`` entries set to
        ``None`` are ignored so CLI options only win when given.
        """

        payload: dict[str, Any] = {}
        if path is not None:
            if not path.exists():
                raise FileNotFoundError(f"Configuration not found: {path}")
            if path.suffix not in CONFIG_EXTENSIONS:
                raise ValueError(f"Unsupported configuration format: {path.suffix}")
            payload = _read_file(path)
        else:
            default_path = self.locator.default_config_path()
            if default_path.exists():
                payload = _read_file(default_path)
        for key, value in (overrides or {}).items():
            if value is not None:
                payload[key] = value
        return CrawlConfig.model_validate(payload)

    def save(self, config: CrawlConfig, path: Path | None = None) -> Path:
        target = path or self.locator.default_config_path()
        target.parent.mkdir(parents=True, exist_ok=True)
        _write_file(target, config.model_dump(mode="json"))
        return target

    def resolve(self, path: Path) -> Path:
        """Anchor a relative data path at the project root."""

        if path.is_absolute():
            return path
        return (self.locator.project_root / path).resolve()


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS"]
