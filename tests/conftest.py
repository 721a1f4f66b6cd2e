from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_global_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global config at an empty location so the user's file never leaks in."""
    path = tmp_path_factory.mktemp("global") / "config.toml"
    monkeypatch.setenv("DUMP_DIR_GLOBAL_CONFIG", str(path))
    return path
