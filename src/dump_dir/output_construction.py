from __future__ import annotations

import shutil
import subprocess  # noqa: S404
from typing import TYPE_CHECKING, TextIO

from dump_dir.exceptions import RenderError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    CommandProbe = Callable[[str], str | None]

SEPARATOR = "=" * 52
HIGHLIGHTERS = ("bat", "batcat")

_BOLD_BLUE = "\033[1;34m"
_RESET = "\033[0m"


def find_highlighter(which: CommandProbe | None = None, names: Sequence[str] = HIGHLIGHTERS) -> str | None:
    """Look up the first available highlighter on the command search path.

    Args:
        which (CommandProbe | None, optional): path lookup, injectable for tests.
            Defaults to `shutil.which`.
        names (Sequence[str], optional): executables to try in order. Defaults to ("bat", "batcat").

    Returns:
        str | None: the resolved executable, or None when none is installed
    """
    probe = which or shutil.which
    for name in names:
        found = probe(name)
        if found:
            return found
    return None


def build_header(path: Path | str, *, color: bool = False) -> str:
    """Build the banner printed above each file.

    Args:
        path (Path | str): the file path to show
        color (bool, optional): wrap the banner in bold blue ANSI codes. Defaults to False.

    Returns:
        str: three lines (separator, file name, separator) ending with a newline
    """
    lines = [SEPARATOR, f" FILE: {path}", SEPARATOR]
    if color:
        lines = [f"{_BOLD_BLUE}{ln}{_RESET}" for ln in lines]
    return "\n".join(lines) + "\n"


def read_plain(path: Path) -> str:
    """Read a whole file as UTF-8, replacing undecodable bytes.

    Raises:
        RenderError: if the file cannot be read
    """
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise RenderError(path=path, cause=e.strerror or str(e)) from e


def read_highlighted(path: Path, highlighter: str, *, color: bool) -> str:
    """Run the highlighter on `path` and return its output.

    Line numbers are requested and the syntax is picked by the highlighter
    from the file extension. Output is captured so a file's header and body
    are always written together.

    Raises:
        RenderError: if the highlighter cannot be started or exits non-zero
    """
    cmd = [
        highlighter,
        "--style=numbers",
        f"--color={'always' if color else 'never'}",
        "--paging=never",
        str(path),
    ]
    try:
        out = subprocess.run(cmd, capture_output=True, check=False)  # noqa: S603
    except OSError as e:
        raise RenderError(path=path, cause=str(e)) from e
    if out.returncode != 0:
        detail = out.stderr.decode("utf-8", errors="replace").strip()
        raise RenderError(path=path, cause=f"{highlighter} exited with {out.returncode}: {detail}")
    return out.stdout.decode("utf-8", errors="replace")


def count_lines(text: str) -> int:
    return len(text.splitlines())


class Renderer:
    """Writes included files to a stream, through a highlighter when one is installed.

    The highlighter is looked up once, when the renderer is built.

    Attributes:
        out: Destination stream.
        highlighter: Executable used for syntax highlighting, or None for plain output.
        color: Whether ANSI colors are emitted.
    """

    def __init__(
        self,
        out: TextIO,
        *,
        which: CommandProbe | None = None,
        color: bool | None = None,
    ) -> None:
        self.out = out
        self.highlighter = find_highlighter(which)
        self.color = out.isatty() if color is None else color

    def render_body(self, path: Path) -> str:
        if self.highlighter is None:
            return read_plain(path)
        return read_highlighted(path, self.highlighter, color=self.color)

    def render(self, path: Path) -> int:
        """Write the header and content of one file, then a blank line.

        Nothing is written when the content cannot be produced.

        Args:
            path (Path): the file to render

        Raises:
            RenderError: if the file cannot be read or highlighted

        Returns:
            int: the number of lines of the file as written
        """
        body = self.render_body(path)
        if body and not body.endswith("\n"):
            body += "\n"
        self.out.write(build_header(path, color=self.color))
        self.out.write(body)
        self.out.write("\n")
        return count_lines(body)

    def write_summary(self, lines: Sequence[str]) -> None:
        for line in lines:
            self.out.write(f"\033[2m{line}{_RESET}\n" if self.color else f"{line}\n")
