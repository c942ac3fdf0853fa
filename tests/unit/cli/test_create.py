"""Tests for CLI create command."""

import pytest

from ncbuild.cli import main
from ncbuild.errors import ExitCode
from ncbuild.settings import load_settings


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestCLICreate:
    """Tests for the 'ncbuild create' command."""

    def test_writes_settings_document(self, tmp_path):
        path = tmp_path / "NativeCodeSettings.xml"

        code = _run(
            [
                "create",
                "-o",
                str(path),
                "-p",
                "../native",
                "-t",
                "imaging",
                "audio",
                "--cmakeArgs=-DUSE_SIMD=ON",
                "-b",
                "build",
            ]
        )

        assert code == 0
        settings = load_settings(path)
        assert settings.native_code_base == "../native"
        assert settings.dll_targets == ["imaging", "audio"]
        assert settings.generation_arguments == "-DUSE_SIMD=ON"
        assert settings.build_path_base == "build"

    def test_defaults_are_empty(self, tmp_path):
        path = tmp_path / "NativeCodeSettings.xml"

        assert _run(["create", "--outputPath", str(path)]) == 0

        settings = load_settings(path)
        assert settings.native_code_base == ""
        assert settings.dll_targets == []
        assert settings.native_file_extensions is None

    def test_existing_file_is_not_overwritten_without_yes(self, tmp_path):
        path = tmp_path / "NativeCodeSettings.xml"
        path.write_text("keep me")

        assert _run(["create", "-o", str(path), "-p", "native"]) == int(ExitCode.INVALID_ARGS)
        assert path.read_text() == "keep me"

    def test_existing_file_is_overwritten_with_yes(self, tmp_path):
        path = tmp_path / "NativeCodeSettings.xml"
        path.write_text("replace me")

        assert _run(["create", "-o", str(path), "-p", "native", "-y"]) == 0
        assert load_settings(path).native_code_base == "native"

    def test_output_path_is_required(self):
        assert _run(["create"]) == int(ExitCode.INVALID_ARGS)
