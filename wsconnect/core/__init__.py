"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import Downloader, ProgressCallback
from .settings import Settings
from .utils import (
    safe_host,
    host_dir_name,
    escape,
    escape_subcommand,
    get_headers,
    format_size,
    load_ssh_config,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "Downloader",
    "ProgressCallback",
    "Settings",
    "safe_host",
    "host_dir_name",
    "escape",
    "escape_subcommand",
    "get_headers",
    "format_size",
    "load_ssh_config",
]
