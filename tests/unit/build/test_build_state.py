"""Tests for stamp handling and staleness classification."""

import os
from pathlib import Path

import pytest

from ncbuild.build.build_state import Action, classify_action, stamp_path_for, touch_stamp
from ncbuild.errors import BuildStampPathNotSetError, ExitCode

BASE_TIME = 1_700_000_000
STAMP_TIME = BASE_TIME + 100


def set_mtime(path: Path, seconds: int) -> None:
    ns = seconds * 1_000_000_000
    os.utime(path, ns=(ns, ns))


class TestAction:
    """Test Action phase helpers."""

    def test_only_regenerate_needs_configure(self):
        assert Action.REGENERATE.needs_configure
        assert not Action.BUILD.needs_configure
        assert not Action.NONE.needs_configure

    def test_none_needs_no_build(self):
        assert Action.REGENERATE.needs_build
        assert Action.BUILD.needs_build
        assert not Action.NONE.needs_build


class TestStampPath:
    """Test stamp path resolution."""

    def test_configuration_is_appended(self, tmp_path):
        assert stamp_path_for("obj/native_stamp", "Debug", tmp_path) == tmp_path / "obj" / "native_stamp_Debug"

    def test_absolute_template_is_kept(self, tmp_path):
        template = str(tmp_path / "elsewhere" / "stamp")
        assert stamp_path_for(template, "Release", tmp_path / "project") == tmp_path / "elsewhere" / "stamp_Release"

    def test_relative_template_is_normalized(self, tmp_path):
        project = tmp_path / "project"
        assert stamp_path_for("../stamps/native", "Debug", project) == tmp_path / "stamps" / "native_Debug"

    @pytest.mark.parametrize("template", ["", "   "])
    def test_blank_template_raises(self, tmp_path, template):
        with pytest.raises(BuildStampPathNotSetError) as exc_info:
            stamp_path_for(template, "Debug", tmp_path)
        assert exc_info.value.exit_code == ExitCode.BUILD_STAMP_PATH_NOT_SET


class TestTouchStamp:
    """Test stamp creation and refresh."""

    def test_creates_missing_stamp_and_parents(self, tmp_path):
        stamp = tmp_path / "obj" / "stamp_Debug"
        touch_stamp(stamp)
        assert stamp.is_file()
        assert stamp.stat().st_size == 0

    def test_refreshes_existing_stamp(self, tmp_path):
        stamp = tmp_path / "stamp_Debug"
        stamp.write_text("")
        set_mtime(stamp, BASE_TIME)

        touch_stamp(stamp)

        assert stamp.stat().st_mtime > BASE_TIME + 1000


class TestClassifyAction:
    """Test the decision order of classify_action."""

    @pytest.fixture
    def layout(self, tmp_path):
        """Settings file, stamp and native tree, all older than the stamp."""
        settings = tmp_path / "NativeCodeSettings.xml"
        settings.write_text("<NativeCodeSettings />")
        set_mtime(settings, BASE_TIME)

        native = tmp_path / "native"
        (native / "src").mkdir(parents=True)
        files = {
            "cmake": native / "CMakeLists.txt",
            "sub_cmake": native / "src" / "CMakeLists.txt",
            "cpp": native / "src" / "filter.cpp",
            "header": native / "src" / "filter.h",
            "notes": native / "src" / "notes.txt",
        }
        for path in files.values():
            path.write_text("")
            set_mtime(path, BASE_TIME)

        stamp = tmp_path / "stamp_Debug"
        stamp.write_text("")
        set_mtime(stamp, STAMP_TIME)

        return {"settings": settings, "native": native, "stamp": stamp, "files": files}

    def _classify(self, layout, extensions=("cpp", "h"), lines=None):
        return classify_action(
            layout["stamp"],
            layout["settings"],
            list(extensions) if extensions is not None else None,
            layout["native"],
            sink=lines.append if lines is not None else None,
        )

    def test_missing_stamp_regenerates(self, layout):
        layout["stamp"].unlink()
        lines = []
        assert self._classify(layout, lines=lines) is Action.REGENERATE
        assert "No build stamp detected, regenerating" in lines

    def test_missing_stamp_regenerates_even_without_extensions(self, layout):
        layout["stamp"].unlink()
        assert self._classify(layout, extensions=None) is Action.REGENERATE

    def test_missing_stamp_wins_over_missing_settings_file(self, layout):
        layout["stamp"].unlink()
        layout["settings"].unlink()
        assert self._classify(layout) is Action.REGENERATE

    def test_no_extensions_regenerates(self, layout):
        assert self._classify(layout, extensions=None) is Action.REGENERATE

    def test_empty_extensions_regenerates(self, layout):
        assert self._classify(layout, extensions=[]) is Action.REGENERATE

    def test_newer_settings_regenerates(self, layout):
        set_mtime(layout["settings"], STAMP_TIME + 1)
        lines = []
        assert self._classify(layout, lines=lines) is Action.REGENERATE
        assert any("native settings" in line for line in lines)

    def test_nothing_changed(self, layout):
        assert self._classify(layout) is Action.NONE

    def test_changed_source_builds(self, layout):
        set_mtime(layout["files"]["cpp"], STAMP_TIME + 5)
        lines = []

        assert self._classify(layout, lines=lines) is Action.BUILD
        assert f"Change detected in source file {layout['files']['cpp']}" in lines

    def test_changed_header_builds_with_dotted_uppercase_extension(self, layout):
        set_mtime(layout["files"]["header"], STAMP_TIME + 5)
        assert self._classify(layout, extensions=[" .H "]) is Action.BUILD

    def test_changed_unwatched_file_is_ignored(self, layout):
        set_mtime(layout["files"]["notes"], STAMP_TIME + 5)
        assert self._classify(layout) is Action.NONE

    def test_changed_cmakelists_regenerates(self, layout):
        set_mtime(layout["files"]["sub_cmake"], STAMP_TIME + 5)
        lines = []

        assert self._classify(layout, lines=lines) is Action.REGENERATE
        assert f"Change detected in CMakeLists.txt file {layout['files']['sub_cmake']}" in lines

    def test_changed_cmakelists_wins_over_changed_source(self, layout):
        set_mtime(layout["files"]["cmake"], STAMP_TIME + 5)
        set_mtime(layout["files"]["cpp"], STAMP_TIME + 5)
        assert self._classify(layout) is Action.REGENERATE

    def test_changed_cmakelists_with_unwatched_file_regenerates(self, layout):
        set_mtime(layout["files"]["cmake"], STAMP_TIME + 5)
        set_mtime(layout["files"]["notes"], STAMP_TIME + 5)
        assert self._classify(layout) is Action.REGENERATE

    def test_classification_is_repeatable(self, layout):
        set_mtime(layout["files"]["cpp"], STAMP_TIME + 5)
        assert self._classify(layout) is self._classify(layout) is Action.BUILD
