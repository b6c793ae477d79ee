"""Data models for nmcleaner."""

import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TARGET_NAME = "node_modules"

# Applied to paths relative to the scan root
DEFAULT_EXCLUDES = [
    "**/node_modules/node_modules/**",  # nested node_modules
    "**/.*/**",  # hidden directories
    "**/snap/**",
    "**/AppData/**",  # Windows AppData
    "**/Library/**",  # macOS Library
]


class ScanTarget(BaseModel):
    """A topmost node_modules directory found by a scan."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the directory")
    size_bytes: int = Field(..., ge=0, description="Total size of all files below the directory")
    last_modified: datetime = Field(..., description="Modification time of the directory itself")
    is_unused: bool = Field(..., description="Not modified within the last calendar month")


class SearchConfig(BaseModel):
    """Where and how deep to look for target directories."""

    start_path: str = Field(..., description="Directory to start searching from")
    max_depth: int = Field(-1, ge=-1, description="Maximum directory depth (-1 for unbounded)")
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns (relative to start_path) of paths to drop",
    )
    target_name: str = Field(DEFAULT_TARGET_NAME, description="Directory name to look for")

    @field_validator("start_path")
    @classmethod
    def _absolute(cls, value: str) -> str:
        return os.path.abspath(os.path.expanduser(value))


class ScanOutcome(BaseModel):
    """Result of a scan pass.

    ``error`` is only set when the scan root itself was unusable, so an empty
    ``targets`` list with no error means nothing was found.
    """

    start_path: str
    targets: list[ScanTarget] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Why the scan root could not be scanned")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total_bytes(self) -> int:
        return sum(t.size_bytes for t in self.targets)

    @property
    def unused(self) -> list[ScanTarget]:
        return [t for t in self.targets if t.is_unused]


class RemovalMode(str, Enum):
    """Which scanned directories a removal run picks."""

    ALL = "all"
    UNUSED = "unused"
    INTERACTIVE = "interactive"


class RemovalStatus(str, Enum):
    """Terminal state of a removal run."""

    COMPLETED = "completed"
    NOTHING_FOUND = "nothing_found"
    SCAN_FAILED = "scan_failed"
    NOTHING_SELECTED = "nothing_selected"
    DECLINED = "declined"
    DRY_RUN = "dry_run"
    BACKUP_FAILED = "backup_failed"
    INTERRUPTED = "interrupted"


class RemovalOptions(BaseModel):
    """Options for a removal run."""

    path: str = Field(default_factory=lambda: str(Path.home()), description="Scan root")
    mode: RemovalMode = Field(RemovalMode.INTERACTIVE, description="Selection strategy")
    dry_run: bool = Field(False, description="Report only, never touch the filesystem")
    backup: bool = Field(False, description="Archive selected directories before removal")
    max_depth: int = Field(-1, ge=-1, description="Maximum search depth (-1 for unbounded)")
    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    target_name: str = Field(DEFAULT_TARGET_NAME)
    backup_dir: Optional[str] = Field(None, description="Where to write the archive (default: cwd)")
    backup_keep_paths: bool = Field(
        False,
        description="Name archive entries by path relative to the scan root instead of basename",
    )

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            start_path=self.path,
            max_depth=self.max_depth,
            exclude=self.exclude,
            target_name=self.target_name,
        )


class RemovalFailure(BaseModel):
    """A target that could not be removed."""

    path: str
    error: str


class RemovalResult(BaseModel):
    """Accumulated outcome of one removal run."""

    status: RemovalStatus = RemovalStatus.COMPLETED
    removed_count: int = 0
    total_bytes_freed: int = 0
    backup_path: Optional[str] = None
    errors: list[RemovalFailure] = Field(default_factory=list)
    selected: list[ScanTarget] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def selected_bytes(self) -> int:
        """Total size of the selected directories."""
        return sum(t.size_bytes for t in self.selected)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def aborted(self) -> bool:
        """Whether a whole phase was aborted (bad scan root or failed backup)."""
        return self.status in (RemovalStatus.SCAN_FAILED, RemovalStatus.BACKUP_FAILED)

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 clean, 1 per-target errors, 2 aborted."""
        if self.aborted:
            return 2
        if self.has_errors:
            return 1
        return 0
