"""
Shared CLI state: configuration file and settings resolution
"""
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from ...core.settings import Settings
from ...core.utils import expand_path
from ..config.loader import ConfigLoader
from ..config.settings_parser import build_settings


def config_path(ctx: typer.Context) -> Optional[Path]:
    obj = ctx.obj or {}
    return obj.get("config_path")


def load_settings(ctx: typer.Context, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Resolve settings for a command.

    Args:
        ctx: Typer context carrying the global --config path
        overrides: Options given on the command line, in config layout

    Raises:
        ConfigError: If the configuration file is missing or invalid
    """
    path = config_path(ctx)
    cfg = ConfigLoader().load(
        toml_path=expand_path(str(path)) if path else None,
        cli_overrides=overrides,
    )
    return build_settings(cfg)
