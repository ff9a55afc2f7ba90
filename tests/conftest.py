from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from wsconnect.core.settings import Settings


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Settings rooted in tmp_path, with keyword overrides."""

    def _make(**changes) -> Settings:
        values = dict(
            data_directory=str(tmp_path / "data"),
            global_data_directory=str(tmp_path / "global"),
            ssh_config_path=str(tmp_path / ".ssh" / "config"),
            disable_autostart=False,
            disable_signature_verification=True,
        )
        values.update(changes)
        return Settings(**values)

    return _make
