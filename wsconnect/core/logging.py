"""
Logging and console output for wsconnect
"""
import logging
from typing import Optional
from pathlib import Path

from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback


# Consoles resolve sys.stdout / sys.stderr when writing, so redirected or
# captured streams are honoured.
_stdout_console = Console()
_stderr_console = Console(stderr=True)

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
) -> None:
    """
    Send log records to stderr through rich, and optionally to a file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Also append plain-text records here
        rich_tracebacks: Render uncaught exceptions with rich
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if rich_tracebacks:
        install_traceback(console=_stderr_console, width=120)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_level=True,
    )
    console_handler.setLevel(log_level)
    root.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
    # python-gnupg logs each gpg invocation at DEBUG/INFO
    logging.getLogger("gnupg").setLevel(max(log_level, logging.WARNING))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Module logger, pass __name__"""
    return logging.getLogger(name)


def get_stdout_console() -> Console:
    """Console for command results"""
    return _stdout_console


def get_stderr_console() -> Console:
    """Console for errors, prompts and progress"""
    return _stderr_console
