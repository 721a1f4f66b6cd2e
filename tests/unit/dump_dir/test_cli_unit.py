from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from dump_dir import __version__, cli, output_construction
from dump_dir.exceptions import ConfigParseError, NoMatchingFilesError, PathNotFoundError
from dump_dir.settings import Settings

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture(autouse=True)
def no_highlighter(mocker: MockerFixture) -> None:
    mocker.patch.object(output_construction, "find_highlighter", return_value=None)


def make_files(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        full = root / rel
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(content, encoding="utf-8")


@pytest.mark.unit
def test_parse_args_reads_paths_and_overrides() -> None:
    settings = cli.parse_args(
        [
            "src",
            "tests",
            "--skip-extensions",
            "snap,lock",
            "--skip-patterns",
            r"_test\.py$",
            "--summary",
            "--config",
            "custom.toml",
        ],
    )

    assert settings.paths == [Path("src"), Path("tests")]
    assert settings.skip_extensions == ["snap", "lock"]
    assert settings.skip_patterns == [r"_test\.py$"]
    assert settings.summary is True
    assert settings.config == Path("custom.toml")
    assert settings.no_filter is False


@pytest.mark.unit
def test_parse_args_defaults_to_current_directory() -> None:
    settings = cli.parse_args([])

    assert settings.paths == [Path()]
    assert settings.skip_extensions is None


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    captured = capsys.readouterr()
    assert __version__ in captured.out


@pytest.mark.unit
def test_run_dumps_included_files_and_tallies(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    make_files(tmp_path, {"src/main.rs": "fn main() {}\n", "Cargo.lock": "[deps]\n", ".env": "A=1\n"})
    out = io.StringIO()

    tally = cli.run(Settings(paths=[Path()], summary=True, no_git=True), out)

    text = out.getvalue()
    assert " FILE: src/main.rs" in text
    assert "fn main() {}" in text
    assert "Cargo.lock" not in text
    assert "A=1" not in text
    assert tally.included == 1
    assert dict(tally.skipped) == {"extension": 1, "hidden": 1}
    assert text.rstrip().endswith("skipped (hidden): 1")


@pytest.mark.unit
def test_run_without_summary_prints_no_report(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    make_files(tmp_path, {"main.rs": "fn main() {}\n"})
    out = io.StringIO()

    cli.run(Settings(no_git=True), out)

    assert "Summary" not in out.getvalue()


@pytest.mark.unit
def test_run_continues_after_render_error(tmp_path: Path, mocker: MockerFixture) -> None:
    make_files(tmp_path, {"a.rs": "a\n", "b.rs": "b\n"})
    real_read = output_construction.read_plain

    def flaky(path: Path) -> str:
        if path.name == "a.rs":
            return real_read(tmp_path / "missing.rs")
        return real_read(path)

    mocker.patch.object(output_construction, "read_plain", side_effect=flaky)
    out = io.StringIO()

    tally = cli.run(Settings(paths=[tmp_path], summary=True, no_git=True), out)

    assert f" FILE: {tmp_path / 'a.rs'}" not in out.getvalue()
    assert f" FILE: {tmp_path / 'b.rs'}" in out.getvalue()
    assert tally.render_errors == 1
    assert tally.included == 2  # noqa: PLR2004


@pytest.mark.unit
def test_run_fails_when_everything_is_skipped(tmp_path: Path) -> None:
    make_files(tmp_path, {"Cargo.lock": "[deps]\n"})

    with pytest.raises(NoMatchingFilesError):
        cli.run(Settings(paths=[tmp_path], no_git=True), io.StringIO())


@pytest.mark.unit
def test_run_fails_on_missing_path(tmp_path: Path) -> None:
    with pytest.raises(PathNotFoundError):
        cli.run(Settings(paths=[tmp_path / "nope"], no_git=True), io.StringIO())


@pytest.mark.unit
def test_main_reports_config_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    bad = tmp_path / "bad.toml"
    bad.write_text("skip_binary = maybe", encoding="utf-8")

    exit_code = cli.main([str(tmp_path), "--config", str(bad), "--no-git"])

    assert exit_code == 1
    assert str(bad) in capsys.readouterr().err


@pytest.mark.unit
def test_main_config_error_precedes_output(tmp_path: Path, mocker: MockerFixture) -> None:
    render = mocker.patch.object(cli.Renderer, "render")
    mocker.patch.object(cli, "build_filter_config", side_effect=ConfigParseError(path="x", cause="bad"))

    assert cli.main([str(tmp_path), "--no-git"]) == 1
    render.assert_not_called()


@pytest.mark.unit
def test_main_no_filter_dumps_everything(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    make_files(tmp_path, {"Cargo.lock": "[deps]\n", ".env": "A=1\n"})

    exit_code = cli.main([str(tmp_path), "--no-filter", "--no-git"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "[deps]" in out
    assert "A=1" in out
