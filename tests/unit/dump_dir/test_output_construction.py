from __future__ import annotations

import io
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from dump_dir import output_construction
from dump_dir.exceptions import RenderError
from dump_dir.output_construction import SEPARATOR, Renderer, build_header, find_highlighter

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def absent(_name: str) -> str | None:
    return None


def only_batcat(name: str) -> str | None:
    return "/usr/bin/batcat" if name == "batcat" else None


@pytest.mark.unit
def test_find_highlighter_prefers_bat_then_batcat() -> None:
    assert find_highlighter(lambda name: f"/usr/bin/{name}") == "/usr/bin/bat"
    assert find_highlighter(only_batcat) == "/usr/bin/batcat"
    assert find_highlighter(absent) is None


@pytest.mark.unit
def test_build_header_plain_and_colored() -> None:
    plain = build_header("src/app.py")
    colored = build_header("src/app.py", color=True)

    assert plain == f"{SEPARATOR}\n FILE: src/app.py\n{SEPARATOR}\n"
    assert "\033[1;34m" in colored
    assert " FILE: src/app.py" in colored


@pytest.mark.unit
def test_render_plain_writes_header_body_and_blank_line(tmp_path: Path) -> None:
    src = tmp_path / "app.py"
    src.write_text("print('a')\nprint('b')", encoding="utf-8")
    out = io.StringIO()

    lines = Renderer(out, which=absent).render(src)

    assert lines == 2  # noqa: PLR2004
    assert out.getvalue() == build_header(src) + "print('a')\nprint('b')\n\n"


@pytest.mark.unit
def test_render_plain_replaces_undecodable_bytes(tmp_path: Path) -> None:
    src = tmp_path / "latin.txt"
    src.write_bytes(b"caf\xe9\n")
    out = io.StringIO()

    Renderer(out, which=absent).render(src)

    assert "caf�" in out.getvalue()


@pytest.mark.unit
def test_render_missing_file_raises_and_writes_nothing(tmp_path: Path) -> None:
    out = io.StringIO()

    with pytest.raises(RenderError) as exc_info:
        Renderer(out, which=absent).render(tmp_path / "gone.txt")

    assert exc_info.value.path == tmp_path / "gone.txt"
    assert out.getvalue() == ""


@pytest.mark.unit
def test_render_through_highlighter(tmp_path: Path, mocker: MockerFixture) -> None:
    src = tmp_path / "main.rs"
    src.write_text("fn main() {}\n", encoding="utf-8")
    run = mocker.patch.object(
        output_construction.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout=b"   1 fn main() {}\n", stderr=b""),
    )
    out = io.StringIO()

    renderer = Renderer(out, which=only_batcat, color=False)
    renderer.render(src)

    assert renderer.highlighter == "/usr/bin/batcat"
    cmd = run.call_args.args[0]
    assert cmd == ["/usr/bin/batcat", "--style=numbers", "--color=never", "--paging=never", str(src)]
    assert out.getvalue().endswith("   1 fn main() {}\n\n")


@pytest.mark.unit
def test_highlighter_failure_is_a_render_error(tmp_path: Path, mocker: MockerFixture) -> None:
    src = tmp_path / "main.rs"
    src.write_text("fn main() {}\n", encoding="utf-8")
    mocker.patch.object(
        output_construction.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout=b"", stderr=b"boom"),
    )
    out = io.StringIO()

    with pytest.raises(RenderError, match="boom"):
        Renderer(out, which=only_batcat, color=False).render(src)
    assert out.getvalue() == ""


@pytest.mark.unit
def test_color_follows_terminal_detection() -> None:
    assert Renderer(io.StringIO(), which=absent).color is False
    assert Renderer(io.StringIO(), which=absent, color=True).color is True


@pytest.mark.unit
def test_write_summary_lines() -> None:
    out = io.StringIO()

    Renderer(out, which=absent).write_summary(["Summary: 1 file, 2 lines", "  skipped (hidden): 3"])

    assert out.getvalue() == "Summary: 1 file, 2 lines\n  skipped (hidden): 3\n"
