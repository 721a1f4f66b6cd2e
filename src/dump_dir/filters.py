from __future__ import annotations

import fnmatch
from enum import StrEnum, auto
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

import filetype
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from dump_dir.config import FilterConfig

    BinarySniffer = Callable[[Path], bool]

SNIFF_BYTES = 8192


class Verdict(StrEnum):
    """Outcome of classifying one candidate path."""

    INCLUDE = auto()
    SKIP = auto()


class SkipReason(StrEnum):
    """Rule that excluded a file, in evaluation order."""

    HIDDEN = auto()
    PATH_COMPONENT = auto()
    FILENAME = auto()
    EXTENSION = auto()
    PATTERN = auto()
    GLOB = auto()
    BINARY = auto()


class FilterDecision(BaseModel):
    """Verdict for a single file plus the first rule that fired, if any."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Normalized path that was classified")
    verdict: Verdict
    reason: SkipReason | None = None

    @classmethod
    def include(cls, path: str) -> FilterDecision:
        return cls(path=path, verdict=Verdict.INCLUDE)

    @classmethod
    def skip(cls, path: str, reason: SkipReason) -> FilterDecision:
        return cls(path=path, verdict=Verdict.SKIP, reason=reason)

    @property
    def included(self) -> bool:
        return self.verdict is Verdict.INCLUDE


def normalize_path(path: str | PurePath) -> str:
    """Return `path` with `/` as its only separator."""
    return str(path).replace("\\", "/")


def split_components(path: str | PurePath) -> list[str]:
    """Split a path into its segments, dropping empty and `.` segments.

    Args:
        path (str | PurePath): the path to split, with any separator style

    Returns:
        list[str]: the non-trivial path segments, in order
    """
    return [c for c in normalize_path(path).split("/") if c and c != "."]


def file_extension(base_name: str) -> str:
    """Return the lowercase text after the last `.` of a base name, or "" if none."""
    _, dot, ext = base_name.rpartition(".")
    return ext.lower() if dot else ""


def is_hidden_component(component: str) -> bool:
    return component.startswith(".") and component not in {".", ".."}


def is_binary_file(path: Path, nbytes: int = SNIFF_BYTES) -> bool:
    """Sniff the head of a file for binary content.

    The bytes are first matched against known binary signatures by MIME type
    inference, then checked for a null byte. A file that cannot be opened is
    reported as text so the renderer can surface the read error.

    Args:
        path (Path): the file to sniff
        nbytes (int, optional): number of bytes to inspect. Defaults to 8192.

    Returns:
        bool: True if the file looks binary
    """
    try:
        with path.open("rb") as f:
            chunk = f.read(nbytes)
    except OSError:
        return False
    kind = filetype.guess(chunk)
    if kind is not None and not kind.mime.startswith("text/"):
        return True
    return b"\x00" in chunk


def _glob_parts(pattern: str) -> list[str]:
    return [p for p in pattern.lower().split("/") if p]


def _match_parts(parts: Sequence[str], pat: Sequence[str]) -> bool:
    if not pat:
        return not parts
    head, rest = pat[0], pat[1:]
    if head == "**":
        if not rest:
            return len(parts) > 0
        return any(_match_parts(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_parts(parts[1:], rest)


def matches_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check a relative POSIX path against shell-style globs, ignoring case.

    `*`, `?` and `[...]` stay inside one path segment; only a `**` segment
    crosses directories, and it may match no segment at all (`**/x` matches
    `x` at the root). A trailing `**` needs at least one segment.

    Args:
        rel (str): the path relative to the walk root
        globs (Sequence[str]): the glob patterns

    Returns:
        bool: True if any pattern matches
    """
    parts = split_components(rel.lower())
    return any(_match_parts(parts, _glob_parts(g)) for g in globs)


def glob_covers_dir(rel_dir: str, globs: Sequence[str]) -> bool:
    """Tell whether some glob matches every path below `rel_dir`.

    Only globs ending in a `**` segment qualify, when the segments before it
    match the directory itself.
    """
    parts = split_components(rel_dir.lower())
    for g in globs:
        pat = _glob_parts(g)
        if len(pat) > 1 and pat[-1] == "**" and _match_parts(parts, pat[:-1]):
            return True
    return False


def classify(
    path: str | PurePath,
    config: FilterConfig,
    *,
    rel: str | PurePath | None = None,
    sniff: BinarySniffer = is_binary_file,
) -> FilterDecision:
    """Decide whether one candidate file is dumped.

    Rules are evaluated in a fixed order and the first match wins:
    hidden, path component, filename, extension, pattern, glob, binary.
    Cheap string checks run before the binary sniff, which only reads the
    file when every other rule passed.

    Args:
        path (str | PurePath): the file path as shown to the user; patterns
            are searched in it
        config (FilterConfig): the effective configuration
        rel (str | PurePath | None): the path relative to the walk root, used
            for component, hidden and glob checks. Defaults to `path`.
        sniff (BinarySniffer): binary detector, called only when needed

    Returns:
        FilterDecision: the verdict and, when skipped, the rule that fired
    """
    full = normalize_path(path)
    components = split_components(full if rel is None else rel)
    base_name = components[-1] if components else ""

    if config.skip_hidden and any(is_hidden_component(c) for c in components):
        return FilterDecision.skip(full, SkipReason.HIDDEN)
    if config.skip_path_components and any(c.lower() in config.skip_path_components for c in components):
        return FilterDecision.skip(full, SkipReason.PATH_COMPONENT)
    if base_name.lower() in config.skip_filenames:
        return FilterDecision.skip(full, SkipReason.FILENAME)
    ext = file_extension(base_name)
    if ext and ext in config.skip_extensions:
        return FilterDecision.skip(full, SkipReason.EXTENSION)
    if any(p.search(full) for p in config.compiled_patterns):
        return FilterDecision.skip(full, SkipReason.PATTERN)
    if config.skip_globs and matches_any_glob("/".join(components), config.skip_globs):
        return FilterDecision.skip(full, SkipReason.GLOB)
    if config.skip_binary and sniff(Path(path)):
        return FilterDecision.skip(full, SkipReason.BINARY)
    return FilterDecision.include(full)


def prune_reason(rel_dir: str | PurePath, config: FilterConfig) -> SkipReason | None:
    """Tell whether a directory can be skipped without descending into it.

    Only the directory's own name and the glob rules are checked; ancestors
    were checked when they were visited.

    Args:
        rel_dir (str | PurePath): the directory path relative to the walk root
        config (FilterConfig): the effective configuration

    Returns:
        SkipReason | None: the rule that prunes the directory, or None to descend
    """
    components = split_components(rel_dir)
    if not components:
        return None
    name = components[-1]
    if config.skip_hidden and is_hidden_component(name):
        return SkipReason.HIDDEN
    if name.lower() in config.skip_path_components:
        return SkipReason.PATH_COMPONENT
    if config.skip_globs and glob_covers_dir("/".join(components), config.skip_globs):
        return SkipReason.GLOB
    return None
