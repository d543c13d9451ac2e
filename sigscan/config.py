"""Configuration loading for sigscan (.sigscan.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".sigscan.yml"

DEFAULT_FORMATS = ("txt", "json")
DEFAULT_OUTPUT_DIR = "signatures"
DEFAULT_POLL_INTERVAL = 1.0


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class OutputConfig:
    """Where exports go and which formats are produced."""

    dir: str = DEFAULT_OUTPUT_DIR
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))


@dataclass
class IncludeConfig:
    """Which declarations appear in exports."""

    internal: bool = False
    private: bool = False
    events: bool = True
    errors: bool = True


@dataclass
class ExportConfig:
    """Layout and overwrite behaviour of exported files."""

    separate_by_category: bool = True
    deduplicate: bool = True
    update_existing: bool = True


@dataclass
class WatchConfig:
    """Polling settings for watch mode."""

    poll_interval: float = DEFAULT_POLL_INTERVAL


@dataclass
class SigScanConfig:
    """Represents the settings defined in .sigscan.yml."""

    root: Path
    output: OutputConfig = field(default_factory=OutputConfig)
    include: IncludeConfig = field(default_factory=IncludeConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    exclude_paths: List[str] = field(default_factory=list)
    gitignore: bool = True

    @property
    def output_dir(self) -> Path:
        path = Path(self.output.dir).expanduser()
        return path if path.is_absolute() else self.root / path


def load_config(config_path: Path) -> SigScanConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SigScanConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    output = OutputConfig()
    output_data = _as_dict(data.get("output"))
    if output_data:
        output.dir = _as_str(output_data.get("dir")) or DEFAULT_OUTPUT_DIR
        formats = _as_str_list(output_data.get("formats"))
        if formats:
            output.formats = [item.strip().lower() for item in formats if item.strip()]

    include = IncludeConfig()
    include_data = _as_dict(data.get("include"))
    for key in ("internal", "private", "events", "errors"):
        value = _as_bool(include_data.get(key))
        if value is not None:
            setattr(include, key, value)

    export = ExportConfig()
    export_data = _as_dict(data.get("export"))
    for key in ("separate_by_category", "deduplicate", "update_existing"):
        value = _as_bool(export_data.get(key))
        if value is not None:
            setattr(export, key, value)

    watch = WatchConfig()
    watch_data = _as_dict(data.get("watch"))
    interval = _as_float(watch_data.get("poll_interval"))
    if interval is not None:
        if interval <= 0:
            raise ConfigError("watch.poll_interval must be positive")
        watch.poll_interval = interval

    gitignore = _as_bool(data.get("gitignore"))

    return SigScanConfig(
        root=root,
        output=output,
        include=include,
        export=export,
        watch=watch,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        gitignore=True if gitignore is None else gitignore,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
