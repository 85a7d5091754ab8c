"""Processing configuration and its workspace file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    tomllib = None  # type: ignore

DEFAULT_PROCESS_LIMIT = 10_000

DEFAULT_PROCESSORS: List[str] = [
    "include",
    "include-file",
    "arg",
    "sample",
    "comment",
    "include-arg",
    "remove-escape-chars",
]

CONFIG_FILE_NAMES = ("docprocessor.toml", ".docprocessorrc")


class ErrorMode(str, Enum):
    """How tag failures reach the user."""

    RAISE = "raise"
    # write a formatted error block into the failing doc and keep going
    INLINE = "inline"


@dataclass
class ProcessingConfig:
    """Fully resolved configuration for one processing run."""

    processors: List[str] = field(default_factory=lambda: list(DEFAULT_PROCESSORS))
    process_limit: int = DEFAULT_PROCESS_LIMIT
    arguments: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    dry_run: bool = False
    fail_fast: bool = False
    error_mode: ErrorMode = ErrorMode.RAISE
    output_dir: Optional[Path] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def arguments_for(self, processor_id: str) -> Dict[str, Any]:
        return dict(self.arguments.get(processor_id, {}))


def _read_json_config(path: Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON configuration: {exc}", path=str(path)) from exc


def _read_toml_config(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise RuntimeError("TOML parsing requires Python 3.11 or later.")
    with path.open("rb") as handle:
        try:
            return tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML configuration: {exc}", path=str(path)) from exc


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false", "1", "0", "yes", "no"}:
        return value.lower() in {"true", "1", "yes"}
    raise ConfigError(f"Option '{name}' must be a boolean, got {value!r}.")


def _parse_processors(value: Any) -> List[str]:
    if value is None:
        return list(DEFAULT_PROCESSORS)
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigError(f"Option 'processors' must be a list of processor ids, got {value!r}.")


def _parse_arguments(value: Any) -> Dict[str, Dict[str, Any]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("Section 'arguments' must map processor ids to tables.")
    arguments: Dict[str, Dict[str, Any]] = {}
    for processor_id, options in value.items():
        if not isinstance(options, dict):
            raise ConfigError(f"Arguments for processor '{processor_id}' must be a table.")
        arguments[str(processor_id)] = dict(options)
    return arguments


def parse_processing_config(data: Dict[str, Any], root: Optional[Path] = None) -> ProcessingConfig:
    section = data.get("docprocessor", data)
    process_limit = int(section.get("process_limit", DEFAULT_PROCESS_LIMIT))
    if process_limit < 1:
        raise ConfigError("Option 'process_limit' must be at least 1.")
    error_mode_raw = str(section.get("error_mode", ErrorMode.RAISE.value))
    try:
        error_mode = ErrorMode(error_mode_raw)
    except ValueError as exc:
        raise ConfigError(f"Unknown error_mode '{error_mode_raw}'.", hint="Use 'raise' or 'inline'.") from exc
    output_raw = section.get("output_dir")
    output_dir = None
    if output_raw:
        output_dir = Path(output_raw)
        if root is not None and not output_dir.is_absolute():
            output_dir = (root / output_dir).resolve()
    return ProcessingConfig(
        processors=_parse_processors(section.get("processors")),
        process_limit=process_limit,
        arguments=_parse_arguments(section.get("arguments")),
        dry_run=_parse_bool(section.get("dry_run", False), "dry_run"),
        fail_fast=_parse_bool(section.get("fail_fast", False), "fail_fast"),
        error_mode=error_mode,
        output_dir=output_dir,
        raw=data,
    )


def locate_config_file(root: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    if explicit is not None:
        return explicit if explicit.exists() else None
    for candidate in CONFIG_FILE_NAMES:
        path = root / candidate
        if path.exists():
            return path
    return None


def load_processing_config(root: Path, explicit: Optional[Path] = None) -> ProcessingConfig:
    root = root.resolve()
    config_path = locate_config_file(root, explicit)
    if config_path is None:
        if explicit is not None:
            raise ConfigError(f"Configuration file '{explicit}' does not exist.")
        return ProcessingConfig()

    if config_path.suffix == ".toml":
        data = _read_toml_config(config_path)
    else:
        data = _read_json_config(config_path)
    return parse_processing_config(data, root)


__all__ = [
    "DEFAULT_PROCESS_LIMIT",
    "DEFAULT_PROCESSORS",
    "ErrorMode",
    "ProcessingConfig",
    "parse_processing_config",
    "locate_config_file",
    "load_processing_config",
]
