from __future__ import annotations

import os
import re
import tomllib
from functools import reduce
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, StrictBool, ValidationError, field_validator

from dump_dir.exceptions import ConfigNotFoundError, ConfigParseError
from dump_dir.logging import logger
from dump_dir.settings import ENV_FILE

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dump_dir.settings import Settings

GLOBAL_CONFIG_ENV = "DUMP_DIR_GLOBAL_CONFIG"
LOCAL_CONFIG_NAME = "dump.toml"

FILTER_FIELDS = (
    "skip_extensions",
    "skip_patterns",
    "skip_filenames",
    "skip_path_components",
    "skip_globs",
    "skip_binary",
    "skip_hidden",
)


def _clean_strings(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    for v in values:
        s = v.strip()
        if s:
            out.append(s)
    return out


class ConfigLayer(BaseModel):
    """One partial source of filter settings.

    A field left to None is absent and inherits from the layers below it.
    A field set to a value replaces the inherited value entirely; lists are
    never unioned with lower layers.

    Attributes:
        name: Label of the layer, used in logs ("defaults", "global", ...).
        source: File the layer was read from, if any.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(default="", exclude=True)
    source: Path | None = Field(default=None, exclude=True)

    skip_extensions: list[str] | None = None
    skip_patterns: list[str] | None = None
    skip_filenames: list[str] | None = None
    skip_path_components: list[str] | None = None
    skip_globs: list[str] | None = None
    skip_binary: StrictBool | None = None
    skip_hidden: StrictBool | None = None

    @field_validator("skip_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        # "" can never be an extension rule, ".lock" means "lock"
        return [e for e in (s.lower().lstrip(".") for s in _clean_strings(value)) if e]

    @field_validator("skip_filenames", "skip_path_components")
    @classmethod
    def _normalize_names(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [s.lower() for s in _clean_strings(value)]

    @field_validator("skip_patterns", "skip_globs")
    @classmethod
    def _drop_blank(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _clean_strings(value)

    def present_fields(self) -> dict[str, Any]:
        """Return the fields this layer sets, keyed by field name."""
        return {name: getattr(self, name) for name in FILTER_FIELDS if getattr(self, name) is not None}


class FilterConfig(BaseModel):
    """Effective, fully merged rule set used for one run.

    Collections are stored as frozensets/tuples so the value cannot drift
    once built. Patterns are compiled case-insensitively on construction.
    """

    model_config = ConfigDict(frozen=True)

    skip_extensions: frozenset[str]
    skip_patterns: tuple[str, ...]
    skip_filenames: frozenset[str]
    skip_path_components: frozenset[str]
    skip_globs: tuple[str, ...] = ()
    skip_binary: bool
    skip_hidden: bool

    _compiled_patterns: tuple[re.Pattern[str], ...] = PrivateAttr(default=())

    def model_post_init(self, __context: Any) -> None:  # noqa: ANN401, PYI063
        """Compile `skip_patterns`, failing on the first invalid one."""
        compiled: list[re.Pattern[str]] = []
        for pat in self.skip_patterns:
            try:
                compiled.append(re.compile(pat, re.IGNORECASE))
            except re.error as e:
                raise ConfigParseError(
                    path="skip_patterns",
                    cause=f"invalid regex {pat!r}: {e}",
                    key="skip_patterns",
                ) from e
        self._compiled_patterns = tuple(compiled)

    @property
    def compiled_patterns(self) -> tuple[re.Pattern[str], ...]:
        """The case-insensitive compiled forms of `skip_patterns`."""
        return self._compiled_patterns


DEFAULT_LAYER = ConfigLayer(
    name="defaults",
    skip_extensions=["snap", "lock", "new", "gitignore", "orig", "bak", "swp"],
    skip_patterns=[r".*test.*\.rs$"],
    skip_filenames=[
        "license",
        "license.md",
        "license.txt",
        "readme",
        "readme.md",
        "readme.rst",
        "changelog",
        "changelog.md",
        "makefile",
        "dockerfile",
    ],
    skip_path_components=[".github", ".git", "node_modules", ".direnv"],
    skip_globs=[],
    skip_binary=True,
    skip_hidden=True,
)

NO_FILTER_LAYER = ConfigLayer(
    name="no-filter",
    skip_extensions=[],
    skip_patterns=[],
    skip_filenames=[],
    skip_path_components=[],
    skip_globs=[],
    skip_binary=False,
    skip_hidden=False,
)


def _format_loc(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(p) for p in loc)


def parse_layer(data: dict[str, Any], *, name: str, source: Path | None = None) -> ConfigLayer:
    """Validate a raw key/value table into a ConfigLayer.

    Args:
        data (dict[str, Any]): the decoded table; unknown keys are ignored
        name (str): the layer label
        source (Path | None): the file the table came from, for error messages

    Raises:
        ConfigParseError: if a known key holds a value of the wrong type

    Returns:
        ConfigLayer: the validated partial layer
    """
    try:
        return ConfigLayer(name=name, source=source, **{k: v for k, v in data.items() if k in FILTER_FIELDS})
    except ValidationError as e:
        first = e.errors()[0]
        raise ConfigParseError(
            path=source or name,
            cause=first["msg"],
            key=_format_loc(first["loc"]),
        ) from e


def load_layer(path: Path, *, name: str, required: bool = False) -> ConfigLayer:
    """Read one TOML config file into a ConfigLayer.

    A missing file contributes an all-absent layer unless `required` is set.

    Args:
        path (Path): the file to read
        name (str): the layer label ("global", "local")
        required (bool, optional): fail when the file is missing. Defaults to False.

    Raises:
        ConfigNotFoundError: if `required` and the file does not exist
        ConfigParseError: if the file is not valid TOML or holds wrongly typed values

    Returns:
        ConfigLayer: the parsed layer
    """
    if not path.is_file():
        if required:
            raise ConfigNotFoundError(path=path)
        return ConfigLayer(name=name)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigParseError(path=path, cause=str(e)) from e
    except OSError as e:
        raise ConfigParseError(path=path, cause=e.strerror or str(e)) from e
    layer = parse_layer(data, name=name, source=path)
    logger.info("config_layer_loaded", layer=name, path=str(path), keys=sorted(layer.present_fields()))
    return layer


def cli_layer(settings: Settings) -> ConfigLayer:
    """Build the layer carried by command-line flags.

    Args:
        settings (Settings): the parsed command line

    Returns:
        ConfigLayer: a layer setting only the flags that were given
    """
    return parse_layer(
        {
            "skip_extensions": settings.skip_extensions,
            "skip_patterns": settings.skip_patterns,
        },
        name="cli",
    )


def global_config_path(environ: dict[str, str] | None = None) -> Path:
    """Locate the user-wide config file.

    `DUMP_DIR_GLOBAL_CONFIG` from the environment wins, then the same key in
    a discovered `.env` file, then `~/.config/dump-dir/config.toml`.

    Args:
        environ (dict[str, str] | None): environment mapping; defaults to `os.environ`

    Returns:
        Path: the global config path (it may not exist)
    """
    env = os.environ if environ is None else environ
    override = env.get(GLOBAL_CONFIG_ENV) or (dotenv_values(ENV_FILE).get(GLOBAL_CONFIG_ENV) if ENV_FILE else None)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "dump-dir" / "config.toml"


def merge_layers(layers: Sequence[ConfigLayer]) -> FilterConfig:
    """Fold layers left to right into the effective FilterConfig.

    Each field takes the value of the last layer that sets it. The first
    layer must set every field (the defaults do).

    Args:
        layers (Sequence[ConfigLayer]): layers from lowest to highest precedence

    Raises:
        ValueError: if some field is set by no layer

    Returns:
        FilterConfig: the effective configuration
    """

    def overwrite(acc: dict[str, Any], layer: ConfigLayer) -> dict[str, Any]:
        return {**acc, **layer.present_fields()}

    merged = reduce(overwrite, layers, {})
    missing = [f for f in FILTER_FIELDS if f not in merged]
    if missing:
        msg = f"No layer sets {', '.join(missing)}"
        raise ValueError(msg)
    try:
        return FilterConfig(**merged)
    except ConfigParseError as e:
        owner = next((lay for lay in reversed(layers) if lay.skip_patterns is not None), None)
        if owner is None:
            raise
        raise ConfigParseError(path=owner.source or owner.name, cause=e.cause, key=e.key) from e


def load_layers(settings: Settings) -> list[ConfigLayer]:
    """Collect the ordered layers for one run: defaults, global, local, CLI, no-filter.

    Args:
        settings (Settings): the parsed command line

    Returns:
        list[ConfigLayer]: layers from lowest to highest precedence
    """
    global_path = global_config_path()
    local_path = settings.config or Path(LOCAL_CONFIG_NAME)
    layers = [
        DEFAULT_LAYER,
        load_layer(global_path, name="global"),
        load_layer(local_path, name="local", required=settings.config is not None),
        cli_layer(settings),
    ]
    if settings.no_filter:
        layers.append(NO_FILTER_LAYER)
    return layers


def build_filter_config(settings: Settings) -> FilterConfig:
    """Load every layer for `settings` and merge them."""
    return merge_layers(load_layers(settings))
