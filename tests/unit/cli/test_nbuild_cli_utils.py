"""Tests for CLI utility functions."""

from pathlib import Path

import pytest

from nbuild.build.build_graph import GraphResult, StepOutcome, StepStatus
from nbuild.build.orchestrator import BuildResult
from nbuild.cli_utils import OUTPUT_TAIL_LINES, BannerFormatter, ErrorFormatter, PathValidator, StepTableFormatter


class TestErrorFormatter:
    def test_print_error(self, capsys):
        ErrorFormatter.print_error("Native build failed", "make exited with 2")

        out = capsys.readouterr().out
        assert "✗ Native build failed" in out
        assert "make exited with 2" in out

    def test_print_success(self, capsys):
        ErrorFormatter.print_success("Cleaned")

        assert "✓ Cleaned" in capsys.readouterr().out

    def test_print_build_failure_shows_output_tail(self, capsys):
        output = "\n".join(f"line {i}" for i in range(50))
        result = BuildResult(
            success=False,
            artifact=None,
            environment=None,
            failed_phase="native build",
            message="Native build failed with exit code 2: make clean all",
            build_time=0.5,
            exit_code=2,
            output=output,
        )

        ErrorFormatter.print_build_failure(result)

        out = capsys.readouterr().out
        assert "✗ Native build failed (native build)" in out
        assert "Exit code: 2" in out
        assert "line 49" in out
        assert f"line {49 - OUTPUT_TAIL_LINES}" not in out

    def test_exit_config_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.exit_config_error(ValueError("bad lto"))

        assert exc_info.value.code == 1
        assert "bad lto" in capsys.readouterr().out

    def test_handle_keyboard_interrupt(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()

        assert exc_info.value.code == 130
        assert "Build interrupted" in capsys.readouterr().out

    def test_handle_unexpected_error_verbose(self, capsys):
        try:
            raise ValueError("bad value")
        except ValueError as e:
            with pytest.raises(SystemExit) as exc_info:
                ErrorFormatter.handle_unexpected_error(e, verbose=True)

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "ValueError: bad value" in out
        assert "Traceback:" in out


class TestBannerFormatter:
    def test_single_line(self):
        banner = BannerFormatter.format_banner("BUILD SUCCESSFUL!")

        assert banner.split("\n") == ["=" * 60, "  BUILD SUCCESSFUL!", "=" * 60]

    def test_multi_line_custom_border(self):
        banner = BannerFormatter.format_banner("a\nb", width=4, border_char="-")

        assert banner == "----\n  a\n  b\n----"


class TestPathValidator:
    def test_valid_directory(self, tmp_path):
        PathValidator.validate_project_dir(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(tmp_path / "missing")

        assert exc_info.value.code == 2

    def test_file_is_rejected(self, tmp_path):
        path = Path(tmp_path / "file.txt")
        path.write_text("x")

        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(path)

        assert exc_info.value.code == 2


class TestStepTableFormatter:
    def test_format_outcomes(self):
        result = GraphResult(
            {
                "compileNatives": StepOutcome("compileNatives", StepStatus.FAILED, duration=1.5),
                "package": StepOutcome("package", StepStatus.SKIPPED),
            }
        )

        lines = StepTableFormatter.format_outcomes(result).split("\n")

        assert lines[0].split() == ["compileNatives", "failed", "1.50s"]
        assert lines[1].split() == ["package", "skipped", "-"]
        assert StepTableFormatter.skipped_steps(result) == ["package"]
