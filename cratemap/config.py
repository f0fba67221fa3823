"""Project and scanning configuration.

Lookup order for a project directory:
  1. cratemap.toml / .yaml / .yml / .json (plain or dot-prefixed)
  2. [package] metadata from Cargo.toml
  3. defaults

CRATEMAP_* environment variables override scanning values afterwards.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from cratemap.errors import ConfigError

DEFAULT_SCAN_INTERVAL = 30  # seconds
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_CYCLES = 1000

CONFIG_FILES: tuple[str, ...] = (
    "cratemap.toml",
    "cratemap.yaml",
    "cratemap.yml",
    "cratemap.json",
    ".cratemap.toml",
    ".cratemap.yaml",
    ".cratemap.yml",
    ".cratemap.json",
)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "target/*",
    "*/target/*",
    "*/.git/*",
    "*/node_modules/*",
    ".*",
    "*/.*",
)


@dataclass(slots=True)
class ProjectSettings:
    name: str | None = None
    description: str | None = None
    version: str | None = None
    authors: list[str] = field(default_factory=list)
    repository: str | None = None


@dataclass(slots=True)
class ScanningSettings:
    include_tests: bool = True
    include_examples: bool = False
    include_benches: bool = False
    include_docs: bool = False
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    include_patterns: list[str] = field(default_factory=lambda: ["*.rs"])
    scan_interval: int = DEFAULT_SCAN_INTERVAL
    max_file_size: int | None = DEFAULT_MAX_FILE_SIZE
    follow_symlinks: bool = False
    max_cycles: int = DEFAULT_MAX_CYCLES
    workers: int | None = None  # None: os.cpu_count()
    module_tree_edges: bool = False  # turn `mod x;` into edges

    def validate(self) -> ScanningSettings:
        """Reject limits that cannot drive a scan; returns self."""
        required = {"scan_interval": self.scan_interval, "max_cycles": self.max_cycles}
        optional = {"max_file_size": self.max_file_size, "workers": self.workers}
        for name, value in (*required.items(), *optional.items()):
            if value is None and name in optional:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"scanning.{name} must be a positive integer, got {value!r}")
        return self


@dataclass(slots=True)
class ProjectConfig:
    project: ProjectSettings = field(default_factory=ProjectSettings)
    scanning: ScanningSettings = field(default_factory=ScanningSettings)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _section(cls: type, raw: Any, where: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected a table, got {type(raw).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"{where}: unknown keys {', '.join(unknown)}")
    return cls(**raw)


def config_from_dict(data: dict[str, Any]) -> ProjectConfig:
    """Build ProjectConfig from a parsed mapping; unknown keys are rejected."""
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a table")
    return ProjectConfig(
        project=_section(ProjectSettings, data.get("project"), "project"),
        scanning=_section(ScanningSettings, data.get("scanning"), "scanning").validate(),
    )


def _parse_text(text: str, suffix: str, path: Path) -> dict[str, Any]:
    try:
        if suffix == ".toml":
            return tomllib.loads(text)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text) or {}
        if suffix == ".json":
            return json.loads(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"failed to parse {path}: {e}") from e
    raise ConfigError(f"unsupported config file format: {path.suffix or path.name}")


def load_config_file(path: Path) -> ProjectConfig:
    """Load configuration from an explicit toml/yaml/json file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    return config_from_dict(_parse_text(text, path.suffix.lower(), path))


def find_config_file(project_dir: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = Path(project_dir) / name
        if candidate.is_file():
            return candidate
    return None


def read_cargo_package(cargo_toml: Path) -> dict[str, Any]:
    """Return the [package] table of a Cargo.toml, or {} when absent/invalid."""
    try:
        data = tomllib.loads(Path(cargo_toml).read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    package = data.get("package")
    return package if isinstance(package, dict) else {}


def config_from_cargo_toml(cargo_toml: Path) -> ProjectConfig:
    config = ProjectConfig()
    package = read_cargo_package(cargo_toml)
    if package:
        project = config.project
        project.name = package.get("name")
        project.description = package.get("description")
        version = package.get("version")
        project.version = version if isinstance(version, str) else None
        authors = package.get("authors")
        project.authors = list(authors) if isinstance(authors, list) else []
        project.repository = package.get("repository")
    return config


def _env_int(name: str, default: int | None) -> int | None:
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def apply_env_overrides(config: ProjectConfig) -> ProjectConfig:
    """Apply CRATEMAP_* overrides in place and return the config.

    Unparsable values are ignored; parsed values must still be positive.
    """
    scanning = config.scanning
    scanning.max_file_size = _env_int("CRATEMAP_MAX_FILE_SIZE", scanning.max_file_size)
    scanning.scan_interval = _env_int("CRATEMAP_SCAN_INTERVAL", scanning.scan_interval)
    scanning.max_cycles = _env_int("CRATEMAP_MAX_CYCLES", scanning.max_cycles)
    scanning.workers = _env_int("CRATEMAP_WORKERS", scanning.workers)
    scanning.validate()
    return config


def load_config(project_dir: Path, config_path: Path | None = None) -> ProjectConfig:
    """Resolve configuration for a project directory (see module docstring)."""
    project_dir = Path(project_dir)
    if config_path is not None:
        config = load_config_file(config_path)
    elif (found := find_config_file(project_dir)) is not None:
        config = load_config_file(found)
    elif (project_dir / "Cargo.toml").is_file():
        config = config_from_cargo_toml(project_dir / "Cargo.toml")
    else:
        config = ProjectConfig()
    if config.project.name is None and (project_dir / "Cargo.toml").is_file():
        config.project.name = read_cargo_package(project_dir / "Cargo.toml").get("name")
    return apply_env_overrides(config)


def save_config(config: ProjectConfig, path: Path) -> Path:
    """Write configuration as yaml or json (chosen by suffix)."""
    path = Path(path)
    suffix = path.suffix.lower()
    data = config.to_dict()
    if suffix in (".yaml", ".yml"):
        text = yaml.safe_dump(data, sort_keys=False)
    elif suffix == ".json":
        text = json.dumps(data, indent=2)
    else:
        raise ConfigError(f"cannot write config as {suffix or path.name}; use .yaml or .json")
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to write config file {path}: {e}") from e
    return path
