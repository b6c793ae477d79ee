"""Persistent user settings for nmcleaner."""

import json
import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from nmcleaner.models import DEFAULT_EXCLUDES, DEFAULT_TARGET_NAME, RemovalMode, RemovalOptions
from nmcleaner.scanner import expand_path

logger = logging.getLogger(__name__)

CONFIG_DIR = expand_path("~/.nmcleaner")
CONFIG_FILE = CONFIG_DIR / "config.json"


class Settings(BaseModel):
    """User settings stored in ~/.nmcleaner/config.json."""

    exclude: list[str] = Field(
        default_factory=list,
        description="Extra exclusion globs, appended to the built-in ones",
    )
    max_depth: int = Field(-1, ge=-1, description="Default search depth (-1 for unbounded)")
    target_name: str = Field(DEFAULT_TARGET_NAME, description="Directory name to look for")
    backup_dir: Optional[str] = Field(None, description="Where backups go (default: cwd)")

    @property
    def all_excludes(self) -> list[str]:
        """Built-in exclusions followed by the user's own."""
        return DEFAULT_EXCLUDES + [p for p in self.exclude if p not in DEFAULT_EXCLUDES]

    def removal_options(
        self,
        path: str,
        mode: RemovalMode = RemovalMode.INTERACTIVE,
        dry_run: bool = False,
        backup: bool = False,
        max_depth: int | None = None,
        backup_keep_paths: bool = False,
    ) -> RemovalOptions:
        """Build removal options, falling back to these settings."""
        return RemovalOptions(
            path=str(expand_path(path)),
            mode=mode,
            dry_run=dry_run,
            backup=backup,
            max_depth=self.max_depth if max_depth is None else max_depth,
            exclude=self.all_excludes,
            target_name=self.target_name,
            backup_dir=str(expand_path(self.backup_dir)) if self.backup_dir else None,
            backup_keep_paths=backup_keep_paths,
        )


def load_settings() -> Settings:
    """Load settings from disk, falling back to defaults."""
    if not CONFIG_FILE.exists():
        return Settings()

    try:
        with open(CONFIG_FILE) as f:
            return Settings.model_validate(json.load(f))
    except (json.JSONDecodeError, OSError, ValidationError) as e:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, e)
        return Settings()


def save_settings(settings: Settings) -> bool:
    """Save settings to disk."""
    try:
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(settings.model_dump(), f, indent=2)
        return True
    except OSError as e:
        logger.error("Could not save config %s: %s", CONFIG_FILE, e)
        return False


def add_exclude(pattern: str) -> dict:
    """
    Add an exclusion glob to the settings.

    Returns:
        Dict with success status and the current exclusions
    """
    if not pattern.strip():
        return {"success": False, "error": "Pattern must not be empty"}

    settings = load_settings()
    if pattern not in settings.exclude:
        settings.exclude.append(pattern)

    if save_settings(settings):
        return {"success": True, "exclude": settings.exclude}
    return {"success": False, "error": "Failed to save config"}


def remove_exclude(pattern: str) -> dict:
    """
    Remove an exclusion glob from the settings.

    Returns:
        Dict with success status and the current exclusions
    """
    settings = load_settings()
    if pattern not in settings.exclude:
        return {"success": False, "error": f"Pattern not configured: {pattern}"}

    settings.exclude.remove(pattern)
    if save_settings(settings):
        return {"success": True, "exclude": settings.exclude}
    return {"success": False, "error": "Failed to save config"}


def set_max_depth(depth: int) -> dict:
    """Set the default search depth."""
    if depth < -1:
        return {"success": False, "error": "Depth must be -1 (unbounded) or greater"}

    settings = load_settings()
    settings.max_depth = depth
    if save_settings(settings):
        return {"success": True, "max_depth": depth}
    return {"success": False, "error": "Failed to save config"}


def reset_settings() -> dict:
    """Restore default settings."""
    if save_settings(Settings()):
        return {"success": True}
    return {"success": False, "error": "Failed to save config"}
