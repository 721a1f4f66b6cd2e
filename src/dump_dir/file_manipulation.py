from __future__ import annotations

import os
import shutil
import subprocess  # noqa: S404
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from dump_dir.exceptions import GitCommandError, WalkWarning
from dump_dir.filters import prune_reason
from dump_dir.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from dump_dir.config import FilterConfig
    from dump_dir.filters import SkipReason

    WarningHandler = Callable[[WalkWarning], None]
    PruneHandler = Callable[[Path, SkipReason], None]


class TraversalMode(StrEnum):
    """How candidate files are enumerated for a run."""

    GIT = auto()
    PLAIN = auto()


class Candidate(BaseModel):
    """A file produced by traversal, not yet classified.

    Attributes:
        path: Path shown to the user (the walk root joined with `rel`).
        rel: Path relative to the walk root, with POSIX separators.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Display path")
    rel: str = Field(..., description="Path relative to the walk root")


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path).replace("\\", "/")


def _run_git(args: list[str], cwd: Path) -> str:
    cmd = ["git", *args]
    try:
        out = subprocess.run(  # noqa: S603
            cmd,
            cwd=str(cwd),
            text=True,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        raise GitCommandError(command=" ".join(cmd), returncode=-1, stdout="", stderr=str(e)) from e
    if out.returncode != 0:
        raise GitCommandError(
            command=" ".join(cmd),
            returncode=out.returncode,
            stdout=out.stdout,
            stderr=out.stderr,
        )
    return out.stdout


def is_inside_git_repo(path: Path) -> bool:
    """Check whether `path` (or the directory holding it) lies in a git work tree.

    Args:
        path (Path): a file or directory

    Returns:
        bool: True if git reports a work tree, False otherwise (including when
            git is not installed)
    """
    if shutil.which("git") is None:
        return False
    folder = path if path.is_dir() else path.parent
    try:
        return _run_git(["rev-parse", "--is-inside-work-tree"], folder).strip() == "true"
    except GitCommandError:
        return False


def select_traversal(roots: Sequence[Path], *, no_git: bool = False) -> TraversalMode:
    """Pick the traversal mode once for all roots, from the first root only.

    Args:
        roots (Sequence[Path]): the requested roots, in command-line order
        no_git (bool, optional): force the plain walk. Defaults to False.

    Returns:
        TraversalMode: GIT when the first root is inside a repository
    """
    if no_git or not roots:
        return TraversalMode.PLAIN
    return TraversalMode.GIT if is_inside_git_repo(roots[0]) else TraversalMode.PLAIN


def git_ls_files(root: Path) -> list[str]:
    """List files under `root` that git does not ignore.

    Tracked files plus untracked ones not excluded by `.gitignore`,
    `.git/info/exclude` or the user's global excludes file.

    Args:
        root (Path): a directory inside a git work tree

    Raises:
        GitCommandError: if `git` fails (e.g. `root` is not in a repository)

    Returns:
        list[str]: sorted paths relative to `root`, with POSIX separators
    """
    out = _run_git(["ls-files", "--cached", "--others", "--exclude-standard", "-z"], root)
    return sorted({p for p in out.split("\0") if p})


def _check_file(path: Path, on_warning: WarningHandler) -> bool:
    if path.is_file():
        return True
    if path.exists():
        # live symlink to a directory
        return False
    if path.is_symlink():
        on_warning(WalkWarning(path=path, cause="broken symlink"))
    else:
        on_warning(WalkWarning(path=path, cause="listed but missing from the working tree"))
    return False


def walk_git(root: Path, on_warning: WarningHandler) -> Iterator[Candidate]:
    """Yield the files git would not ignore under `root`."""
    for rel in git_ls_files(root):
        path = root / rel
        if _check_file(path, on_warning):
            yield Candidate(path=path, rel=rel)


def walk_files(
    root: Path,
    config: FilterConfig,
    on_warning: WarningHandler,
    on_prune: PruneHandler | None = None,
) -> Iterator[Candidate]:
    """Walk the directory tree rooted at `root` in name order.

    Directories rejected by `prune_reason` are not descended into. Symlinked
    directories are not followed, so the walk cannot cycle.

    Args:
        root (Path): the directory to walk
        config (FilterConfig): the effective configuration, for pruning
        on_warning (WarningHandler): called for each unreadable entry
        on_prune (PruneHandler | None): called for each pruned directory

    Yields:
        Iterator[Candidate]: the regular files found
    """

    def onerror(err: OSError) -> None:
        on_warning(WalkWarning(path=Path(err.filename or root), cause=err.strerror or str(err)))

    for dirpath, dirs, files in os.walk(root, onerror=onerror, followlinks=False):
        here = Path(dirpath)
        rel_dir = relpath(here, root)
        kept: list[str] = []
        for d in sorted(dirs):
            reason = prune_reason(f"{rel_dir}/{d}", config)
            if reason is None:
                kept.append(d)
            elif on_prune is not None:
                on_prune(here / d, reason)
        dirs[:] = kept
        for f in sorted(files):
            path = here / f
            if _check_file(path, on_warning):
                yield Candidate(path=path, rel=relpath(path, root))


def iter_candidates(
    roots: Sequence[Path],
    config: FilterConfig,
    *,
    mode: TraversalMode,
    on_warning: WarningHandler,
    on_prune: PruneHandler | None = None,
) -> Iterator[Candidate]:
    """Yield every candidate file under `roots`, root by root.

    A root naming a file is yielded as is. In GIT mode a root that git
    cannot list (e.g. outside any repository) falls back to the plain walk.

    Args:
        roots (Sequence[Path]): existing files or directories
        config (FilterConfig): the effective configuration
        mode (TraversalMode): the mode chosen by `select_traversal`
        on_warning (WarningHandler): called for each non-fatal walk problem
        on_prune (PruneHandler | None): called for each pruned directory

    Yields:
        Iterator[Candidate]: candidate files in traversal order
    """
    for root in roots:
        if not root.is_dir():
            yield Candidate(path=root, rel=root.name)
            continue
        if mode is TraversalMode.GIT:
            try:
                listed = list(walk_git(root, on_warning))
            except GitCommandError as e:
                logger.warning("git_walk_failed", root=str(root), cause=str(e))
            else:
                yield from listed
                continue
        yield from walk_files(root, config, on_warning, on_prune)
