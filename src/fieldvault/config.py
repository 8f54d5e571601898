"""fieldvault configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (FIELDVAULT_DB, FIELDVAULT_FALLBACK, FIELDVAULT_DEBOUNCE_MS)
  3. Per-project fieldvault.yaml  (next to .fieldvault.db)
  4. Global ~/.fieldvault/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load() — never yaml.load().
Relative storage paths resolve against the project directory.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".fieldvault"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "fieldvault.yaml"

DEFAULT_DOCUMENT_KEY = "fieldvault_project_state"
DEFAULT_DB_NAME = ".fieldvault.db"
DEFAULT_FALLBACK_NAME = ".fieldvault.kv.json"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["project", "storage", "autosave", "archive", "export", "health"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ProjectCfg:
    """Project-level settings (fieldvault.yaml: project:)."""

    document_key: str = DEFAULT_DOCUMENT_KEY


@dataclass
class StorageCfg:
    """Storage locations (fieldvault.yaml: storage:).

    Attributes:
        db_path: SQLite database holding the document, blobs and config.
        fallback_path: Flat JSON file mirroring config entries.
    """

    db_path: str = DEFAULT_DB_NAME
    fallback_path: str = DEFAULT_FALLBACK_NAME


@dataclass
class AutosaveCfg:
    """Autosave debounce window (fieldvault.yaml: autosave:)."""

    debounce_ms: int = 400

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


@dataclass
class ArchiveCfg:
    """Archive compilation (fieldvault.yaml: archive:)."""

    fetch_workers: int = 4
    preview_size: int = 240


@dataclass
class ExportCfg:
    """Delivery channels (fieldvault.yaml: export:).

    Attributes:
        output_dir: Direct-save directory; None disables the file channel.
        share_command: External share command; None disables handoff.
        share_max_bytes: Largest payload handed to the share command.
        download_dir: Fallback download directory.
    """

    output_dir: str | None = None
    share_command: str | None = None
    share_max_bytes: int = 200 * 1024 * 1024
    download_dir: str = str(Path.home() / "Downloads")


@dataclass
class HealthCfg:
    """Storage quota display (fieldvault.yaml: health:)."""

    poll_interval_s: float = 10.0
    warn_percent: float = 90.0


@dataclass
class FieldVaultConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    project: ProjectCfg = field(default_factory=ProjectCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    autosave: AutosaveCfg = field(default_factory=AutosaveCfg)
    archive: ArchiveCfg = field(default_factory=ArchiveCfg)
    export: ExportCfg = field(default_factory=ExportCfg)
    health: HealthCfg = field(default_factory=HealthCfg)
    project_dir: Path = field(default_factory=Path.cwd)

    def resolve(self, path: str) -> Path:
        """Resolve *path* against the project directory (``~`` expanded)."""
        candidate = Path(path).expanduser()
        return candidate if candidate.is_absolute() else self.project_dir / candidate

    @property
    def db_path(self) -> Path:
        return self.resolve(self.storage.db_path)

    @property
    def fallback_path(self) -> Path:
        return self.resolve(self.storage.fallback_path)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: FieldVaultConfig) -> None:
    if cfg.autosave.debounce_ms <= 0:
        raise ConfigError(
            f"autosave.debounce_ms must be > 0, got {cfg.autosave.debounce_ms}"
        )
    if cfg.archive.fetch_workers < 1:
        raise ConfigError(
            f"archive.fetch_workers must be >= 1, got {cfg.archive.fetch_workers}"
        )
    if cfg.archive.preview_size < 16:
        raise ConfigError(
            f"archive.preview_size must be >= 16, got {cfg.archive.preview_size}"
        )
    if not 0 <= cfg.health.warn_percent <= 100:
        raise ConfigError(
            f"health.warn_percent must be between 0 and 100, got {cfg.health.warn_percent}"
        )
    if cfg.health.poll_interval_s <= 0:
        raise ConfigError(
            f"health.poll_interval_s must be > 0, got {cfg.health.poll_interval_s}"
        )
    if not cfg.project.document_key:
        raise ConfigError("project.document_key must not be empty")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return value


def _cfg_from_dict(data: dict[str, Any], project_dir: Path) -> FieldVaultConfig:
    """Build a *FieldVaultConfig* from a merged raw YAML dict."""
    cfg = FieldVaultConfig(project_dir=project_dir)

    try:
        if "project" in data:
            p = _section(data, "project")
            cfg.project = ProjectCfg(
                document_key=str(p.get("document_key", cfg.project.document_key)),
            )

        if "storage" in data:
            s = _section(data, "storage")
            cfg.storage = StorageCfg(
                db_path=str(s.get("db_path", cfg.storage.db_path)),
                fallback_path=str(s.get("fallback_path", cfg.storage.fallback_path)),
            )

        if "autosave" in data:
            a = _section(data, "autosave")
            cfg.autosave = AutosaveCfg(
                debounce_ms=int(a.get("debounce_ms", cfg.autosave.debounce_ms)),
            )

        if "archive" in data:
            ar = _section(data, "archive")
            cfg.archive = ArchiveCfg(
                fetch_workers=int(ar.get("fetch_workers", cfg.archive.fetch_workers)),
                preview_size=int(ar.get("preview_size", cfg.archive.preview_size)),
            )

        if "export" in data:
            e = _section(data, "export")
            cfg.export = ExportCfg(
                output_dir=e.get("output_dir") or cfg.export.output_dir,
                share_command=e.get("share_command") or cfg.export.share_command,
                share_max_bytes=int(
                    e.get("share_max_bytes", cfg.export.share_max_bytes)
                ),
                download_dir=str(e.get("download_dir", cfg.export.download_dir)),
            )

        if "health" in data:
            h = _section(data, "health")
            cfg.health = HealthCfg(
                poll_interval_s=float(
                    h.get("poll_interval_s", cfg.health.poll_interval_s)
                ),
                warn_percent=float(h.get("warn_percent", cfg.health.warn_percent)),
            )
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: FieldVaultConfig) -> FieldVaultConfig:
    """Apply FIELDVAULT_* environment variable overrides (layer 2)."""
    if db := os.environ.get("FIELDVAULT_DB"):
        cfg.storage.db_path = db
    if fallback := os.environ.get("FIELDVAULT_FALLBACK"):
        cfg.storage.fallback_path = fallback
    if debounce := os.environ.get("FIELDVAULT_DEBOUNCE_MS"):
        try:
            cfg.autosave.debounce_ms = int(debounce)
        except ValueError as exc:
            raise ConfigError(
                f"FIELDVAULT_DEBOUNCE_MS must be an integer, got '{debounce}'"
            ) from exc
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FieldVaultConfig:
    """Load and return a merged *FieldVaultConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *fieldvault.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FieldVaultConfig* with env var overrides applied.

    Raises:
        ConfigError: If a value has the wrong type or is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged, search_dir)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def project_config_template() -> str:
    """Return the commented ``fieldvault.yaml`` written by ``fieldvault init``."""
    return (
        "# fieldvault project configuration.\n"
        "\n"
        "storage:\n"
        f"  db_path: {DEFAULT_DB_NAME}\n"
        f"  fallback_path: {DEFAULT_FALLBACK_NAME}\n"
        "\n"
        "autosave:\n"
        "  debounce_ms: 400\n"
        "\n"
        "archive:\n"
        "  fetch_workers: 4\n"
        "  preview_size: 240\n"
        "\n"
        "export:\n"
        "  # output_dir: exports\n"
        "  # share_command: xdg-open\n"
        "  download_dir: ~/Downloads\n"
        "\n"
        "health:\n"
        "  poll_interval_s: 10\n"
        "  warn_percent: 90\n"
    )
