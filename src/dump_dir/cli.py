"""dump-dir: print the contents of a directory tree to the terminal.

Overview
--------
Every file under the given paths is printed after a header naming it,
syntax highlighted through `bat` when it is installed. Which files are
printed is decided by skip rules merged from four layers, lowest to
highest precedence:

1) built-in defaults,
2) the global file `~/.config/dump-dir/config.toml`
   (or `$DUMP_DIR_GLOBAL_CONFIG`),
3) the local file `./dump.toml` (or `--config PATH`),
4) command-line flags (`--skip-extensions`, `--skip-patterns`).

A layer that sets a key replaces the whole value below it; lists are
never merged. `--no-filter` disables every rule.

Inside a git work tree the walk honors `.gitignore`; elsewhere it is a
plain recursive walk.

Usage
-----
    dump-dir src tests --summary
    dump-dir --skip-extensions lock,snap --skip-patterns '_test\\.py$'
    dump-dir --no-filter --no-git vendor/
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dump_dir import __version__
from dump_dir.config import build_filter_config
from dump_dir.exceptions import (
    ConfigNotFoundError,
    ConfigParseError,
    NoMatchingFilesError,
    PathNotFoundError,
    RenderError,
)
from dump_dir.file_manipulation import iter_candidates, select_traversal
from dump_dir.filters import classify
from dump_dir.logging import logger, setup_logging
from dump_dir.output_construction import Renderer
from dump_dir.settings import Settings
from dump_dir.summary import SummaryTally

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from dump_dir.exceptions import WalkWarning
    from dump_dir.filters import SkipReason

FATAL_ERRORS = (ConfigParseError, ConfigNotFoundError, PathNotFoundError, NoMatchingFilesError)


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="dump-dir",
        description="Print file contents of a directory, git-aware and filter-configurable.",
    )
    p.add_argument("paths", nargs="*", type=Path, metavar="PATH", help="Files or directories (default: .).")
    p.add_argument(
        "--skip-extensions",
        type=str,
        default=None,
        metavar="EXT",
        help='Override skip_extensions, comma separated (e.g. "snap,lock").',
    )
    p.add_argument(
        "--skip-patterns",
        type=str,
        default=None,
        metavar="PATTERN",
        help="Override skip_patterns, comma separated regexes.",
    )
    p.add_argument(
        "--no-filter",
        action="store_true",
        help="Include files that would normally be skipped (overrides all filters).",
    )
    p.add_argument("--summary", action="store_true", help="Show a summary at the end.")
    p.add_argument("--config", type=Path, default=None, metavar="FILE", help="Local config file (default: ./dump.toml).")
    p.add_argument("--no-git", action="store_true", help="Do not use git ls-files.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = p.parse_args(argv)
    return Settings(**vars(args))


def check_paths(paths: Sequence[Path]) -> None:
    """Fail fast when a requested root does not exist.

    Raises:
        PathNotFoundError: for the first missing path
    """
    for path in paths:
        if not path.exists():
            raise PathNotFoundError(path=path)


def run(settings: Settings, out: TextIO) -> SummaryTally:
    """Dump every file under `settings.paths` that survives the filters.

    Args:
        settings (Settings): the parsed command line
        out (TextIO): where file contents are written

    Raises:
        ConfigParseError: if a config layer is malformed
        ConfigNotFoundError: if `--config` names a missing file
        PathNotFoundError: if a requested path does not exist
        NoMatchingFilesError: if no file is left to print

    Returns:
        SummaryTally: the run's counters (disabled unless `--summary`)
    """
    config = build_filter_config(settings)
    check_paths(settings.paths)

    tally = SummaryTally(enabled=settings.summary)
    renderer = Renderer(out)
    mode = select_traversal(settings.paths, no_git=settings.no_git)
    logger.info("traversal_selected", mode=mode.value, highlighter=renderer.highlighter)

    def on_warning(warning: WalkWarning) -> None:
        logger.warning("walk_warning", path=str(warning.path), cause=warning.cause)
        tally.record_walk_warning()

    def on_prune(path: Path, reason: SkipReason) -> None:  # noqa: ARG001
        tally.record_pruned(reason)

    included = 0
    for cand in iter_candidates(settings.paths, config, mode=mode, on_warning=on_warning, on_prune=on_prune):
        decision = classify(cand.path, config, rel=cand.rel)
        tally.record(decision)
        if not decision.included:
            continue
        included += 1
        try:
            tally.record_lines(renderer.render(cand.path))
        except RenderError as e:
            logger.warning("render_error", path=str(e.path), cause=e.cause)
            tally.record_render_error()

    renderer.write_summary(tally.report())
    if included == 0:
        raise NoMatchingFilesError(paths=list(settings.paths))
    return tally


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        run(settings, sys.stdout)
    except FATAL_ERRORS as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
