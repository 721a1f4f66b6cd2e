from __future__ import annotations

from pathlib import Path

from dotenv import find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_FILE = find_dotenv(usecwd=True)


def split_comma_list(value: str | list[str] | None) -> list[str] | None:
    """Split a comma separated flag value; None stays None (flag not given)."""
    if value is None:
        return None
    items = [value] if isinstance(value, str) else value
    return [part.strip() for item in items for part in item.split(",") if part.strip()]


class Settings(BaseModel):
    """Configuration settings for one dump_dir run, as parsed from the command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    paths: list[Path] = Field(default_factory=lambda: [Path()], description="Files or directories to dump.")
    skip_extensions: list[str] | None = Field(
        default=None,
        description="Override skip_extensions (comma list).",
    )
    skip_patterns: list[str] | None = Field(
        default=None,
        description="Override skip_patterns (comma list of regex).",
    )
    no_filter: bool = Field(default=False, description="Disable every filter rule.")
    summary: bool = Field(default=False, description="Print a summary at the end.")
    config: Path | None = Field(default=None, description="Local config file (default ./dump.toml).")
    no_git: bool = Field(default=False, description="Do not use git ls-files.")
    log_file: str = Field(default="", description="Log file path.")

    @field_validator("paths", mode="before")
    @classmethod
    def _default_to_cwd(cls, value: list[Path] | None) -> list[Path]:
        return list(value) if value else [Path()]

    @field_validator("skip_extensions", "skip_patterns", mode="before")
    @classmethod
    def _split(cls, value: str | list[str] | None) -> list[str] | None:
        return split_comma_list(value)
