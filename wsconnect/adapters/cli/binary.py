"""
Binary CLI commands
"""
import typer
from typing import Optional

from rich.table import Table

from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...core.exceptions import WsConnectError, AccessDeniedError, ResponseError, ConfigError, UnsignedBinaryError
from ...domain.binary import BinaryManager, ensure_binary, find_binary
from ...domain.version import Features
from .context import load_settings

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()


def register_binary_commands(app: typer.Typer) -> None:
    """Register binary commands directly on the main app"""
    app.command(name="ensure")(ensure_run)
    app.command(name="login")(login_run)
    app.command(name="features")(features_run)


def binary_overrides(
    binary_source: Optional[str] = None,
    binary_directory: Optional[str] = None,
    data_directory: Optional[str] = None,
    downloads: Optional[bool] = None,
    fallback: Optional[bool] = None,
    signing_key: Optional[str] = None,
    allow_unsigned: Optional[bool] = None,
):
    """Command line options in config layout"""
    return {
        "data_directory": data_directory,
        "binary": {
            "source": binary_source,
            "directory": binary_directory,
            "enable_downloads": downloads,
            "enable_fallback": fallback,
            "signing_key": signing_key,
            "allow_unsigned": allow_unsigned,
        },
    }


def features_table(features: Features) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Feature", no_wrap=True)
    table.add_column("Enabled")
    for name, enabled in (
        ("disable_autostart", features.disable_autostart),
        ("report_workspace_usage", features.report_workspace_usage),
        ("wildcard_ssh", features.wildcard_ssh),
    ):
        table.add_row(name, "[green]yes[/green]" if enabled else "[dim]no[/dim]")
    return table


def _print_binary(manager: BinaryManager) -> None:
    state = manager.state()
    location = "fallback" if manager.is_fallback else "primary"
    stdout_console.print(f"[green]✓[/green] Binary: [cyan]{manager.local_binary_path}[/cyan] ({location})")
    if not state.exists:
        stdout_console.print("  [yellow]Not downloaded[/yellow]")
        return
    version = state.reported_version
    stdout_console.print(f"  Version: {version if version is not None else '[yellow]unknown[/yellow]'}")
    stdout_console.print(f"  SHA-1: [dim]{state.content_hash}[/dim]")


def _confirm_unsigned(status):
    """Ask on the terminal, with the spinner paused"""

    def confirm(message: str) -> bool:
        status.stop()
        try:
            return typer.confirm(f"{message}. Run it anyway?", default=False)
        finally:
            status.start()

    return confirm


def ensure_run(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Deployment URL"),
    build_version: str = typer.Argument(..., help="Version the deployment reports"),
    binary_source: Optional[str] = typer.Option(None, "--binary-source", help="URL or path to download the binary from"),
    binary_directory: Optional[str] = typer.Option(None, "--binary-dir", help="Directory to store the binary in"),
    data_directory: Optional[str] = typer.Option(None, "--data-dir", help="Data directory"),
    downloads: Optional[bool] = typer.Option(None, "--downloads/--no-downloads", help="Allow downloading the binary"),
    fallback: Optional[bool] = typer.Option(None, "--fallback/--no-fallback", help="Fall back to the data directory"),
    signing_key: Optional[str] = typer.Option(None, "--signing-key", help="Public key the binary must be signed with"),
    allow_unsigned: Optional[bool] = typer.Option(
        None, "--allow-unsigned/--no-allow-unsigned", help="Run binaries that cannot be verified without asking"
    ),
):
    """
    Make sure a binary matching the deployment version is on disk

    Examples:
        wsconnect ensure https://dev.example.com 2.19.0
        wsconnect ensure https://dev.example.com 2.19.0 --binary-dir /opt/coder --fallback
    """
    try:
        settings = load_settings(
            ctx,
            binary_overrides(
                binary_source, binary_directory, data_directory, downloads, fallback, signing_key, allow_unsigned
            ),
        )
        with stderr_console.status("Ensuring CLI...") as status:
            manager = ensure_binary(
                settings,
                url,
                build_version,
                on_progress=status.update,
                confirm_unsigned=_confirm_unsigned(status),
            )

        _print_binary(manager)
        stdout_console.print(features_table(manager.features))

    except AccessDeniedError as e:
        stderr_console.print(f"[red]Access Denied:[/red] {e}")
        stderr_console.print("[dim]Enable --fallback to use the data directory instead[/dim]")
        raise typer.Exit(1)
    except ResponseError as e:
        stderr_console.print(f"[red]Download Error:[/red] {e}")
        raise typer.Exit(1)
    except UnsignedBinaryError as e:
        stderr_console.print(f"[red]Signature Error:[/red] {e}")
        stderr_console.print("[dim]Configure a signing key, or pass --allow-unsigned to skip the check[/dim]")
        raise typer.Exit(1)
    except ConfigError as e:
        stderr_console.print(f"[red]Config Error:[/red] {e}")
        raise typer.Exit(1)
    except WsConnectError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Failed to ensure binary")
        stderr_console.print(f"[red]Error:[/red] Failed to ensure binary for {url}: {e}")
        raise typer.Exit(1)


def login_run(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Deployment URL"),
    token: str = typer.Option(..., "--token", prompt=True, hide_input=True, help="Session token"),
):
    """
    Store a session token for the deployment with the managed binary
    """
    try:
        settings = load_settings(ctx)
        manager = find_binary(settings, url)
        manager.login(token)
        stdout_console.print(f"[green]✓[/green] Logged in to [cyan]{url}[/cyan]")
        stdout_console.print(f"  Config: {manager.config_path}")

    except WsConnectError as e:
        stderr_console.print(f"[red]Login Error:[/red] {e}")
        raise typer.Exit(1)
    except OSError as e:
        stderr_console.print(f"[red]Error:[/red] Cannot run binary for {url}: {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Failed to log in")
        stderr_console.print(f"[red]Error:[/red] Failed to log in to {url}: {e}")
        raise typer.Exit(1)


def features_run(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Deployment URL"),
):
    """
    Show which features the binary on disk supports
    """
    try:
        settings = load_settings(ctx)
        manager = find_binary(settings, url)
        _print_binary(manager)
        stdout_console.print(features_table(manager.features))

    except WsConnectError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
