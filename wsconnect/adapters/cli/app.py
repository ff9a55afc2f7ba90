"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.logging import setup_logging, get_logger
from .binary import register_binary_commands
from .ssh import register_ssh_commands

logger = get_logger(__name__)

# Create main app
app = typer.Typer(
    name="wsconnect",
    add_completion=False,
    help="Workspace connection tool: managed CLI binary and SSH config",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

register_binary_commands(app)
register_ssh_commands(app)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
    ),
):
    """
    wsconnect - connect to remote workspaces over SSH

    Use subcommands to perform different operations:
    - ensure: Download or reuse the deployment's CLI binary
    - login: Store a session token with the binary
    - features: Show the features the binary supports
    - config-ssh: Write SSH Host entries for workspaces
    - host: Show the SSH options of a managed host
    """
    setup_logging(level=log_level, log_file=log_file)
    ctx.obj = {"config_path": config}


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
