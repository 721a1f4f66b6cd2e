from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class DumpDirError(Exception):
    """Base exception for errors in the dump_dir module."""


@dataclass
class GitCommandError(DumpDirError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        return f"`{self.command}` exited with {self.returncode}: {self.stderr.strip()}"


@dataclass
class ConfigParseError(DumpDirError):
    """Raised when a configuration file cannot be parsed or validated."""

    path: Path | str
    cause: str
    key: str | None = None

    def __str__(self) -> str:
        where = f"{self.path} (key {self.key!r})" if self.key else str(self.path)
        return f"Failed to parse configuration {where}: {self.cause}"


@dataclass
class ConfigNotFoundError(DumpDirError):
    """Raised when an explicitly requested config file does not exist."""

    path: Path

    def __str__(self) -> str:
        return f"Config file not found: {self.path}"


@dataclass
class PathNotFoundError(DumpDirError):
    """Raised when a path requested on the command line does not exist."""

    path: Path

    def __str__(self) -> str:
        return f"Path does not exist: {self.path}"


@dataclass
class NoMatchingFilesError(DumpDirError):
    """Raised when the requested paths yield no file after filtering."""

    paths: list[Path] = field(default_factory=list)

    def __str__(self) -> str:
        joined = ", ".join(str(p) for p in self.paths) or "."
        return f"No files to dump under: {joined}"


@dataclass
class WalkWarning(DumpDirError):
    """A single filesystem entry could not be visited during traversal."""

    path: Path
    cause: str

    def __str__(self) -> str:
        return f"Cannot walk {self.path}: {self.cause}"


@dataclass
class RenderError(DumpDirError):
    """A single file could not be rendered."""

    path: Path
    cause: str

    def __str__(self) -> str:
        return f"Cannot render {self.path}: {self.cause}"
