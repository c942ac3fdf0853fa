"""
Source tree scanner for native staleness checks.

Walks a native source tree and reports which files changed since the last
successful build, as recorded by the stamp file's modification time.

Two kinds of changes are reported separately:
- watched source files (by extension) newer than the stamp
- CMakeLists.txt files newer than the stamp, regardless of the watched set
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

BUILD_SCRIPT_NAME = "cmakelists.txt"

# Bounds the walk for pathological trees (symlink loops are not followed anyway)
MAX_RECURSION_DEPTH = 256


def normalize_extension(extension: str) -> str:
    """Normalize an extension for comparison: trimmed, lowercase, no leading dot."""
    return extension.strip().lower().lstrip(".")


def normalize_extensions(extensions: Optional[Iterable[str]]) -> Optional[frozenset[str]]:
    """Normalize a watched-extension list; None stays None, blanks are dropped."""
    if extensions is None:
        return None
    return frozenset(ext for ext in (normalize_extension(e) for e in extensions) if ext)


def _mtime_ns(path: Path) -> Optional[int]:
    try:
        return path.stat().st_mtime_ns
    except OSError:
        # Deleted between discovery and stat
        return None


@dataclass(frozen=True)
class ScanResult:
    """Files newer than the stamp, in walk order."""

    changed_sources: tuple[Path, ...]
    changed_build_scripts: tuple[Path, ...]

    @property
    def has_source_changes(self) -> bool:
        return bool(self.changed_sources)

    @property
    def has_build_script_changes(self) -> bool:
        return bool(self.changed_build_scripts)


class SourceScanner:
    """Compares a native source tree against a stamp timestamp."""

    def __init__(self, root: Path, extensions: Iterable[str], max_depth: int = MAX_RECURSION_DEPTH):
        """
        Args:
            root: Native source root to walk
            extensions: Watched source extensions (any case, dot optional)
            max_depth: Maximum directory depth below root to descend into
        """
        self.root = root
        self.extensions = normalize_extensions(extensions) or frozenset()
        self.max_depth = max_depth

    def iter_files(self) -> Iterator[Path]:
        """Yield every regular file under root, up to max_depth levels deep."""
        root_depth = len(self.root.parts)

        def _on_error(error: OSError) -> None:
            logger.debug(f"Skipping unreadable directory: {error}")

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_error):
            current = Path(dirpath)
            if len(current.parts) - root_depth >= self.max_depth:
                logger.debug(f"Max recursion depth reached at {current}, not descending")
                dirnames[:] = []
            for filename in filenames:
                yield current / filename

    def is_watched_source(self, path: Path) -> bool:
        return normalize_extension(path.suffix) in self.extensions

    @staticmethod
    def is_build_script(path: Path) -> bool:
        return path.name.lower() == BUILD_SCRIPT_NAME

    def iter_newer_than(self, stamp_mtime_ns: int) -> Iterator[tuple[Path, bool, bool]]:
        """
        Yield (path, is_source, is_build_script) for candidate files strictly
        newer than stamp_mtime_ns. Files matching neither category are not
        stat'ed.
        """
        for path in self.iter_files():
            is_source = self.is_watched_source(path)
            is_script = self.is_build_script(path)
            if not (is_source or is_script):
                continue
            mtime = _mtime_ns(path)
            if mtime is not None and mtime > stamp_mtime_ns:
                yield path, is_source, is_script

    def scan(self, stamp_mtime_ns: int) -> ScanResult:
        """
        Walk the tree once and collect changed files.

        Args:
            stamp_mtime_ns: Stamp modification time in nanoseconds

        Returns:
            ScanResult with changed watched sources and changed CMakeLists.txt files
        """
        sources: list[Path] = []
        scripts: list[Path] = []
        for path, is_source, is_script in self.iter_newer_than(stamp_mtime_ns):
            if is_source:
                sources.append(path)
            if is_script:
                scripts.append(path)
        return ScanResult(changed_sources=tuple(sources), changed_build_scripts=tuple(scripts))
