"""Discovery of backup source paths and exclude files.

Each invocation rescans the configured root globs, so new sites or mounts
are picked up without touching the configuration. Exclude files found in
user home directories are merged into one list applied to the whole
backup, not to the directory they were found next to.
"""

import glob
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupTarget:
    """A directory to back up and the exclude files applied to it."""

    path: Path
    excludes: tuple[Path, ...] = ()


@dataclass
class ResolvedSources:
    """Result of a path resolution pass.

    Attributes:
        targets: Directories to back up, in discovery order
        excludes: Per-user exclude files shared by every target
        global_exclude_file: Site-wide exclude file, if it exists
    """

    targets: list[BackupTarget] = field(default_factory=list)
    excludes: list[Path] = field(default_factory=list)
    global_exclude_file: Optional[Path] = None

    @property
    def paths(self) -> list[Path]:
        return [t.path for t in self.targets]

    def all_excludes(self) -> list[Path]:
        """Global exclude file first, then the per-user files."""
        files = [self.global_exclude_file] if self.global_exclude_file else []
        return files + self.excludes


def _expand_root(pattern: str) -> list[Path]:
    """Directories directly matching one root glob, sorted like the shell does."""
    matches = sorted(glob.glob(pattern))
    if not matches:
        logger.debug("Root %s matched nothing, skipping", pattern)
    return [Path(m) for m in matches if Path(m).is_dir()]


def discover_user_excludes(home_glob: str, filename: str) -> list[Path]:
    """Find ``filename`` in every home directory matching ``home_glob``."""
    excludes = []
    for home in _expand_root(home_glob):
        candidate = home / filename
        if candidate.is_file():
            logger.debug("Found user exclude file: %s", candidate)
            excludes.append(candidate)
    return excludes


def resolve(
    roots: Sequence[str],
    user_exclude_filename: str,
    home_glob: str = "/home/*",
    global_exclude_file: str | Path | None = None,
) -> ResolvedSources:
    """Discover the backup targets and exclude files for one invocation.

    Missing roots, homes or exclude files never raise; they simply
    contribute nothing.

    Args:
        roots: Glob patterns whose matching directories are backed up
        user_exclude_filename: Name of the per-user exclude file
        home_glob: Glob matching user home directories
        global_exclude_file: Exclude file applied to every invocation

    Returns:
        ResolvedSources with de-duplicated targets in discovery order
    """
    excludes = discover_user_excludes(home_glob, user_exclude_filename)

    global_file = None
    if global_exclude_file:
        candidate = Path(global_exclude_file)
        if candidate.is_file():
            global_file = candidate
        else:
            logger.warning("Global exclude file not found, skipping: %s", candidate)

    shared = tuple(([global_file] if global_file else []) + excludes)

    seen: set[Path] = set()
    targets = []
    for pattern in roots:
        for directory in _expand_root(pattern):
            if directory in seen:
                continue
            seen.add(directory)
            targets.append(BackupTarget(path=directory, excludes=shared))

    logger.debug(
        "Resolved %d target(s) and %d exclude file(s)", len(targets), len(shared)
    )
    return ResolvedSources(
        targets=targets,
        excludes=excludes,
        global_exclude_file=global_file,
    )


def existing_excludes(files: Iterable[Path]) -> list[Path]:
    """Drop exclude files that disappeared since resolution."""
    present = []
    for path in files:
        if Path(path).is_file():
            present.append(Path(path))
        else:
            logger.warning("Exclude file vanished, skipping: %s", path)
    return present
