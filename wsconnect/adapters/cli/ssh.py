"""
SSH config CLI commands
"""
import typer
from typing import List, Optional

from rich.table import Table

from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...core.exceptions import WsConnectError, SSHConfigFormatError, ConfigError
from ...domain.binary import find_binary
from ...domain.ssh import SshConfigService, WorkspaceAgent
from .context import load_settings

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()


def register_ssh_commands(app: typer.Typer) -> None:
    """Register SSH config commands directly on the main app"""
    app.command(name="config-ssh")(config_ssh_run)
    app.command(name="host")(host_run)


def config_ssh_run(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Deployment URL"),
    workspaces: Optional[List[str]] = typer.Argument(None, help="Workspace agents as owner/workspace.agent"),
    remove: bool = typer.Option(False, "--remove", help="Remove this deployment's block"),
    wildcard: Optional[bool] = typer.Option(None, "--wildcard/--no-wildcard", help="Use a single wildcard Host entry"),
    ssh_config: Optional[str] = typer.Option(None, "--ssh-config", help="SSH config file to rewrite"),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="Directory the binary writes SSH logs to"),
):
    """
    Write SSH Host entries routing workspaces through the managed binary

    Examples:
        wsconnect config-ssh https://dev.example.com alice/dev.main bob/api.main
        wsconnect config-ssh https://dev.example.com --remove
    """
    try:
        if remove and workspaces:
            stderr_console.print("[red]Error:[/red] --remove takes no workspaces")
            raise typer.Exit(1)
        if not remove and not workspaces:
            stderr_console.print("[red]Error:[/red] Give at least one owner/workspace.agent, or --remove")
            raise typer.Exit(1)

        pairs = [WorkspaceAgent.parse(value) for value in workspaces or []]
        settings = load_settings(
            ctx,
            {"ssh": {"wildcard": wildcard, "config_path": ssh_config, "log_directory": log_dir}},
        )
        manager = find_binary(settings, url)
        features = manager.features
        written = manager.config_ssh(pairs, features)

        service = SshConfigService(settings, url, manager.local_binary_path, manager.config_path)
        if written is None:
            stdout_console.print(f"[cyan]ℹ[/cyan] {service.path} is already up to date")
        elif remove:
            stdout_console.print(f"[green]✓[/green] Removed {url} from [cyan]{service.path}[/cyan]")
        else:
            stdout_console.print(f"[green]✓[/green] Updated [cyan]{service.path}[/cyan]")
            for pair in pairs:
                stdout_console.print(f"  ssh {service.host_alias(pair, features)}")

    except typer.Exit:
        raise
    except SSHConfigFormatError as e:
        stderr_console.print(f"[red]SSH Config Error:[/red] {e}")
        stderr_console.print("[dim]Fix or delete the managed block by hand and try again[/dim]")
        raise typer.Exit(1)
    except ConfigError as e:
        stderr_console.print(f"[red]Config Error:[/red] {e}")
        raise typer.Exit(1)
    except WsConnectError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except ValueError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Failed to configure SSH")
        stderr_console.print(f"[red]Error:[/red] Failed to configure SSH for {url}: {e}")
        raise typer.Exit(1)


def host_run(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Deployment URL"),
    alias: str = typer.Argument(..., help="Host alias, or owner/workspace.agent"),
    ssh_config: Optional[str] = typer.Option(None, "--ssh-config", help="SSH config file to read"),
):
    """
    Show the options SSH resolves for a managed host
    """
    try:
        settings = load_settings(ctx, {"ssh": {"config_path": ssh_config}})
        manager = find_binary(settings, url)
        service = SshConfigService(settings, url, manager.local_binary_path, manager.config_path)
        if "/" in alias:
            alias = service.host_alias(WorkspaceAgent.parse(alias), manager.features)

        options = service.lookup(alias)
        table = Table(title=alias, show_header=True, header_style="bold")
        table.add_column("Option", no_wrap=True)
        table.add_column("Value")
        for key, value in sorted(options.items()):
            table.add_row(key, " ".join(value) if isinstance(value, list) else str(value))
        stdout_console.print(table)

    except (WsConnectError, ValueError) as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
