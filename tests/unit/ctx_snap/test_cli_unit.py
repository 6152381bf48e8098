from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from ctx_snap import __version__, cli
from ctx_snap.exceptions import OutputWriteError, TraversalError
from ctx_snap.logging import LOGGER_NAME

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_defaults() -> None:
    settings = cli.parse_args([])

    assert settings.root == Path()
    assert settings.output == Path("context.md")
    assert settings.max_size_kb == 100
    assert settings.ignore == []
    assert settings.include == []
    assert settings.quiet is False
    assert settings.json_output is False
    assert settings.respect_gitignore is True


@pytest.mark.unit
def test_parse_args_parses_flags(tmp_path: Path) -> None:
    max_size_kb = 42
    settings = cli.parse_args(
        [
            str(tmp_path),
            "-o",
            "out.json",
            "-m",
            str(max_size_kb),
            "-i",
            "*.log",
            "--ignore",
            "dist/",
            "-I",
            "*.py",
            "-q",
            "-j",
            "--no-respect-gitignore",
        ],
    )

    assert settings.root == tmp_path
    assert settings.output == Path("out.json")
    assert settings.max_size_kb == max_size_kb
    assert settings.ignore == ["*.log", "dist/"]
    assert settings.include == ["*.py"]
    assert settings.quiet is True
    assert settings.json_output is True
    assert settings.respect_gitignore is False


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    captured = capsys.readouterr()
    assert __version__ in captured.out


@pytest.mark.unit
def test_main_missing_root_fails_without_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "out.md"

    exit_code = cli.main([str(tmp_path / "missing"), "-o", str(output)])

    assert exit_code == 1
    assert not output.exists()
    assert "Error:" in capsys.readouterr().err


@pytest.mark.unit
def test_main_uncreatable_output_fails(tmp_path: Path) -> None:
    (tmp_path / "a.py").write_text("print('a')\n", encoding="utf-8")

    exit_code = cli.main([str(tmp_path), "-o", str(tmp_path / "no" / "such" / "dir" / "out.md")])

    assert exit_code == 1


@pytest.mark.unit
def test_main_quiet_prints_nothing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "a.py").write_text("print('a')\n", encoding="utf-8")

    exit_code = cli.main([str(tmp_path), "-q"])

    assert exit_code == 0
    assert capsys.readouterr().out == ""
    assert (tmp_path / "context.md").exists()


@pytest.mark.unit
def test_main_reports_progress(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "a.py").write_text("print('a')\n", encoding="utf-8")

    cli.main([str(tmp_path), "-o", "snap.md"])

    out = capsys.readouterr().out
    assert f"Snapping context from: {tmp_path}" in out
    assert "Found 1 files" in out
    assert "Context saved to: snap.md" in out


@pytest.mark.unit
def test_main_snapshot_failure_writes_nothing(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "a.py").write_text("print('a')\n", encoding="utf-8")
    mocker.patch.object(cli, "snapshot", side_effect=TraversalError(root=tmp_path))
    output = tmp_path / "out.md"

    assert cli.main([str(tmp_path), "-o", str(output)]) == 1
    assert not output.exists()


@pytest.mark.unit
def test_write_output_wraps_os_errors(tmp_path: Path) -> None:
    with pytest.raises(OutputWriteError) as exc_info:
        cli.write_output(tmp_path, "content")

    assert exc_info.value.path == tmp_path


@pytest.mark.unit
def test_render_selects_format(tmp_path: Path) -> None:
    (tmp_path / "a.py").write_text("x = 1\n", encoding="utf-8")
    meta = cli.snapshot(cli.parse_args([str(tmp_path)]))

    assert cli.render(meta, json_output=False).startswith("# Project Context Snapshot")
    assert json.loads(cli.render(meta, json_output=True))["total_files"] == 1


def _big_file(root: Path) -> None:
    (root / "big.txt").write_text("x" * 3 * 1024, encoding="utf-8")


@pytest.mark.unit
def test_main_log_file_receives_diagnostics(tmp_path: Path) -> None:
    _big_file(tmp_path)
    log_file = tmp_path / "run.log"

    exit_code = cli.main([str(tmp_path), "-m", "1", "--log-file", str(log_file)])

    assert exit_code == 0
    assert "Skipping large file: big.txt (3kb)" in log_file.read_text(encoding="utf-8")


@pytest.mark.unit
def test_main_log_file_is_replaced_between_runs(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _big_file(tmp_path)
    first = tmp_path / "one.log"
    second = tmp_path / "two.log"

    cli.main([str(tmp_path), "-m", "1", "-o", "a.md", "--log-file", str(first)])
    first_text = first.read_text(encoding="utf-8")
    cli.main([str(tmp_path), "-m", "1", "-o", "b.md", "--log-file", str(second)])

    assert first.read_text(encoding="utf-8") == first_text
    assert "Skipping large file: big.txt (3kb)" in second.read_text(encoding="utf-8")
    assert len([h for h in logging.getLogger(LOGGER_NAME).handlers if isinstance(h, logging.FileHandler)]) == 1

    caplog.clear()
    cli.main([str(tmp_path), "-m", "1", "-o", "c.md"])

    assert logging.getLogger(LOGGER_NAME).propagate is True
    assert "Skipping large file: big.txt (3kb)" in caplog.text
    assert second.read_text(encoding="utf-8").count("Skipping large file") == 1


@pytest.mark.unit
def test_main_quiet_suppresses_diagnostics(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _big_file(tmp_path)
    log_file = tmp_path / "quiet.log"

    cli.main([str(tmp_path), "-m", "1", "-q"])
    cli.main([str(tmp_path), "-m", "1", "-q", "-o", "other.md", "--log-file", str(log_file)])

    assert "Skipping large file" not in caplog.text
    assert "Skipping large file" not in log_file.read_text(encoding="utf-8")


@pytest.mark.unit
def test_main_without_quiet_emits_diagnostics(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _big_file(tmp_path)

    cli.main([str(tmp_path), "-m", "1"])

    assert "Skipping large file: big.txt (3kb)" in caplog.text
