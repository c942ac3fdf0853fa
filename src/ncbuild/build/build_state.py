"""
Build stamp tracking and staleness classification.

The stamp file is an empty marker whose modification time records the last
successful native build for one (project, configuration) pair. Comparing
that time against the settings document and the native source tree decides
how much work the next invocation has to do:

    Action.NONE        nothing changed since the last successful build
    Action.BUILD       only watched source files changed; compile only
    Action.REGENERATE  no stamp, settings changed, or a CMakeLists.txt
                       changed; reconfigure then compile

The decision order is fixed (first match wins):
    1. stamp missing                       -> REGENERATE
    2. no watched extensions configured    -> REGENERATE
    3. settings document newer than stamp  -> REGENERATE
    4. any CMakeLists.txt newer than stamp -> REGENERATE
    5. any watched source newer than stamp -> BUILD
    6. otherwise                           -> NONE
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

from ncbuild.build.source_scanner import SourceScanner, normalize_extensions
from ncbuild.errors import BuildStampPathNotSetError

logger = logging.getLogger(__name__)


class Action(Enum):
    """Work required to bring the native build up to date."""

    NONE = "none"
    BUILD = "build"
    REGENERATE = "regenerate"

    @property
    def needs_configure(self) -> bool:
        return self is Action.REGENERATE

    @property
    def needs_build(self) -> bool:
        return self is not Action.NONE


def stamp_path_for(template: str, configuration: str, project_dir: Path) -> Path:
    """
    Resolve the stamp path for one configuration.

    The configuration name is appended as "<template>_<configuration>"; a
    relative result is resolved against project_dir.

    Raises:
        BuildStampPathNotSetError: If the template is empty or blank
    """
    if not template or not template.strip():
        raise BuildStampPathNotSetError("No build stamp path set")

    stamp_path = Path(f"{template.strip()}_{configuration}")
    if not stamp_path.is_absolute():
        stamp_path = project_dir / stamp_path
    return Path(os.path.abspath(stamp_path))


def classify_action(
    stamp_path: Path,
    settings_path: Path,
    extensions: Optional[Iterable[str]],
    source_root: Path,
    sink: Optional[Callable[[str], None]] = None,
) -> Action:
    """
    Decide what the next native build has to do.

    Args:
        stamp_path: Stamp file for the current configuration
        settings_path: Settings document whose freshness forces a reconfigure
        extensions: Watched source extensions, or None if not configured
        source_root: Native source tree to scan
        sink: Receives one human-readable line per detected change

    Returns:
        The Action required

    Raises:
        OSError: If the stamp or settings file exists but cannot be stat'ed
    """
    emit = sink if sink is not None else logger.info

    try:
        stamp_mtime = stamp_path.stat().st_mtime_ns
    except (FileNotFoundError, NotADirectoryError):
        emit("No build stamp detected, regenerating")
        return Action.REGENERATE

    watched = normalize_extensions(extensions)
    if not watched:
        emit("No native file extensions configured, regenerating")
        return Action.REGENERATE

    if settings_path.stat().st_mtime_ns > stamp_mtime:
        emit(f"Change detected to native settings at {settings_path}, regenerating")
        return Action.REGENERATE

    result = SourceScanner(source_root, watched).scan(stamp_mtime)

    for path in result.changed_sources:
        emit(f"Change detected in source file {path}")
    for path in result.changed_build_scripts:
        emit(f"Change detected in CMakeLists.txt file {path}")

    if result.has_build_script_changes:
        return Action.REGENERATE
    if result.has_source_changes:
        return Action.BUILD
    return Action.NONE


def touch_stamp(stamp_path: Path) -> None:
    """Record a successful build: create the stamp or bump its mtime to now."""
    if stamp_path.exists():
        os.utime(stamp_path, None)
    else:
        stamp_path.parent.mkdir(parents=True, exist_ok=True)
        stamp_path.touch()
    logger.debug(f"Build stamp updated: {stamp_path}")
