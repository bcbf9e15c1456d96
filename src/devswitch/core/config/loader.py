"""
Configuration loader — reads config.yml into ``Settings``.

The configuration directory is per-user (``~/.config/devswitch`` by
default, ``DEVSWITCH_CONFIG_DIR`` to override). It holds ``config.yml``,
the environment fragments, and the audit ledger. A missing config file
simply means defaults.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from devswitch.core.data.ecosystems import get_descriptor
from devswitch.core.models.toolchain import Ecosystem

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "config.yml"
CONFIG_DIR_ENV = "DEVSWITCH_CONFIG_DIR"
DEFAULT_CELLAR_ROOTS = ["/opt/homebrew/Cellar", "/usr/local/Cellar"]


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


def default_config_dir() -> Path:
    """``$DEVSWITCH_CONFIG_DIR`` or ``~/.config/devswitch``."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "devswitch"


class Settings(BaseModel):
    """Everything the core needs to know about this machine."""

    config_dir: str = Field(default_factory=lambda: str(default_config_dir()))
    home: str = Field(default_factory=lambda: str(Path.home()))

    cellar_roots: list[str] = Field(default_factory=lambda: list(DEFAULT_CELLAR_ROOTS))
    brew_path: str | None = None
    java_home_helper: str = "/usr/libexec/java_home"

    scan_system: bool = True
    catalog_limit: int = 6
    command_timeout: int = 30

    custom_scan_paths: dict[str, list[str]] = Field(default_factory=dict)

    def expand(self, path: str) -> str:
        """Expand a leading ``~`` against ``home`` (not the process HOME)."""
        if path == "~":
            return self.home
        if path.startswith("~/"):
            return str(Path(self.home) / path[2:])
        return path

    def fragment_path(self, ecosystem: Ecosystem) -> Path:
        """Where the environment fragment for ``ecosystem`` lives."""
        return Path(self.config_dir) / get_descriptor(ecosystem).env_file

    @property
    def audit_path(self) -> Path:
        return Path(self.config_dir) / "audit.ndjson"

    def custom_paths_for(self, ecosystem: Ecosystem) -> list[str]:
        return list(self.custom_scan_paths.get(ecosystem.value, []))


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load settings from ``<config_dir>/config.yml``.

    Args:
        config_dir: Explicit configuration directory. If None, uses
            ``default_config_dir()``.

    Returns:
        Validated Settings. Defaults if the file doesn't exist.

    Raises:
        ConfigError: If the file exists but can't be read or validated.
    """
    config_dir = config_dir or default_config_dir()
    path = config_dir / CONFIG_FILE

    if not path.is_file():
        logger.debug("No config file at %s — using defaults", path)
        return Settings(config_dir=str(config_dir))

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file never decides where it lives
    data["config_dir"] = str(config_dir)

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    unknown = set(settings.custom_scan_paths) - {e.value for e in Ecosystem}
    if unknown:
        raise ConfigError(f"Unknown ecosystem(s) in custom_scan_paths: {', '.join(sorted(unknown))}")

    return settings


def save_settings(settings: Settings) -> Path:
    """Write settings back to ``config.yml`` (atomic write).

    ``config_dir`` and ``home`` are machine facts, not preferences,
    and are not written.
    """
    config_dir = Path(settings.config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / CONFIG_FILE

    data = settings.model_dump(mode="json", exclude={"config_dir", "home"})
    content = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)

    fd, tmp_path = tempfile.mkstemp(dir=config_dir, prefix=".config_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    logger.debug("Settings saved to %s", path)
    return path


# ── Custom scan paths ───────────────────────────────────────────────


def normalize_scan_path(path: str) -> str:
    """Trim whitespace and trailing slashes; keep ``~`` unexpanded."""
    path = path.strip()
    while len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def builtin_scan_roots(settings: Settings, ecosystem: Ecosystem) -> list[str]:
    """Expanded roots already scanned for ``ecosystem`` without configuration."""
    descriptor = get_descriptor(ecosystem)
    roots = list(settings.cellar_roots)
    roots.extend(settings.expand(vm.path) for vm in descriptor.version_managers)
    return roots


def add_custom_path(settings: Settings, ecosystem: Ecosystem, path: str) -> bool:
    """Add a custom scan path. Returns False if it was a no-op.

    Rejects empty paths, duplicates, and paths that contain or are
    contained by a built-in scan root.
    """
    from devswitch.core.services.toolchains.paths import is_path_inside

    normalized = normalize_scan_path(path)
    if not normalized:
        return False

    current = settings.custom_scan_paths.get(ecosystem.value, [])
    if normalized in current:
        return False

    expanded = settings.expand(normalized)
    for root in builtin_scan_roots(settings, ecosystem):
        if is_path_inside(expanded, root, strict=False) or is_path_inside(root, expanded, strict=False):
            logger.info("Ignoring %s: overlaps built-in scan root %s", normalized, root)
            return False

    settings.custom_scan_paths[ecosystem.value] = current + [normalized]
    return True


def remove_custom_path(settings: Settings, ecosystem: Ecosystem, path: str) -> bool:
    """Remove a custom scan path. Returns False if it wasn't configured."""
    normalized = normalize_scan_path(path)
    current = settings.custom_scan_paths.get(ecosystem.value, [])
    if normalized not in current:
        return False
    current.remove(normalized)
    if not current:
        settings.custom_scan_paths.pop(ecosystem.value, None)
    return True
