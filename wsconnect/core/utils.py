"""
Core utility functions
"""
import os
import subprocess
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
from urllib.parse import urlsplit

import paramiko

from .constants import HEADER_COMMAND_URL_ENV, SSH_CONFIG_PATH
from .exceptions import ConfigError, HeaderCommandError
from .system import OS, get_os


# ============================================================
# URL Utilities
# ============================================================

_DEFAULT_PORTS = {"http": 80, "https": 443}


def safe_host(url: str) -> str:
    """
    Return the host of a URL, converting IDN to ASCII in case the file
    system cannot support the necessary character set.
    """
    host = urlsplit(url).hostname or ""
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return host


def host_dir_name(url: str) -> str:
    """
    Directory name for a deployment, e.g. dev.example.com or
    dev.example.com-8080 when the URL carries a non-default port.
    """
    parts = urlsplit(url)
    port = parts.port
    host = safe_host(url)
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        return f"{host}-{port}"
    return host


def is_absolute_url(value: str) -> bool:
    """Check if value carries both a scheme and a network location"""
    parts = urlsplit(value)
    return bool(parts.scheme) and bool(parts.netloc)


def with_path(url: str, path: str) -> str:
    """Replace the path of a URL, dropping any query or fragment"""
    parts = urlsplit(url)
    if not path.startswith("/"):
        path = "/" + path
    return f"{parts.scheme}://{parts.netloc}{path}"


def with_last_segment(url: str, segment: str) -> str:
    """Replace the last path segment of a URL, e.g. the file name of a download"""
    parts = urlsplit(url)
    directory = parts.path.rsplit("/", 1)[0]
    return f"{parts.scheme}://{parts.netloc}{directory}/{segment}"


def expand_path(value: str) -> Path:
    """Resolve local path, expand ~ and environment variables"""
    return Path(os.path.expandvars(os.path.expanduser(value)))


# ============================================================
# Shell Escaping
# ============================================================

def escape(value: str) -> str:
    """
    Escape an argument for use in an SSH ProxyCommand.

    Arguments containing whitespace are wrapped in double quotes. Newlines
    cannot be represented and are rejected.
    """
    if "\n" in value:
        raise ValueError(f"Argument cannot contain newlines: {value!r}")
    escaped = value.replace('"', '\\"')
    if " " in value or "\t" in value:
        return f'"{escaped}"'
    return escaped


def escape_subcommand(value: str, os_: Optional[OS] = None) -> str:
    """
    Escape a command that the managed binary will run itself.

    The command is always quoted as a single argument. On Unix, $ is escaped
    so variables such as $CODER_URL are expanded by the binary's shell rather
    than by the shell that runs the ProxyCommand.
    """
    if "\n" in value:
        raise ValueError(f"Command cannot contain newlines: {value!r}")
    os_ = os_ or get_os()
    escaped = value.replace('"', '\\"')
    if os_ != OS.WINDOWS:
        escaped = escaped.replace("$", "\\$")
    return f'"{escaped}"'


# ============================================================
# Header Command
# ============================================================

def get_headers(url: str, header_command: Optional[str]) -> Dict[str, str]:
    """
    Run the header command and parse its output into HTTP headers.

    The command runs through the platform shell with CODER_URL set to the
    deployment URL and must print one `name=value` header per line.

    Raises:
        HeaderCommandError: If the command fails or prints an invalid line
    """
    if not header_command or not header_command.strip():
        return {}

    if get_os() == OS.WINDOWS:
        argv = ["cmd.exe", "/c", header_command]
    else:
        argv = ["sh", "-c", header_command]

    env = dict(os.environ)
    env[HEADER_COMMAND_URL_ENV] = url
    try:
        result = subprocess.run(argv, capture_output=True, text=True, env=env, check=False)
    except OSError as e:
        raise HeaderCommandError(f"Failed to run header command for {url}: {e}") from e

    if result.returncode != 0:
        raise HeaderCommandError(
            f"Header command for {url} exited with code {result.returncode}: {result.stderr.strip()}"
        )

    return parse_headers(result.stdout)


def parse_headers(output: str) -> Dict[str, str]:
    """Parse `name=value` lines, skipping blank lines"""
    headers: Dict[str, str] = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        name, sep, value = line.partition("=")
        if not sep:
            raise HeaderCommandError(f"Header command output {line!r} does not look like name=value")
        if not name or any(ch.isspace() for ch in name):
            raise HeaderCommandError(f"Header name {name!r} in {line!r} is invalid")
        headers[name] = value
    return headers


# ============================================================
# Formatting
# ============================================================

def format_size(size_bytes: int) -> str:
    """
    Format bytes to human-readable size string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string like "100 B", "1.5 KB", "2.0 GB"
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    kb = size_bytes / 1024.0
    if kb < 1024:
        return f"{kb:.1f} KB"

    mb = kb / 1024.0
    if mb < 1024:
        return f"{mb:.1f} MB"

    gb = mb / 1024.0
    return f"{gb:.1f} GB"


def redact_token(args) -> str:
    """Join arguments for logging with any --token value hidden"""
    parts = list(args)
    for i, part in enumerate(parts[:-1]):
        if part == "--token":
            parts[i + 1] = "<redacted>"
    return " ".join(parts)


# ============================================================
# SSH Config Lookup
# ============================================================

def load_ssh_config(hostname: str, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Resolve the options SSH would use for a Host alias.

    Args:
        hostname: Host alias in the SSH configuration
        config_path: SSH config file, defaults to ~/.ssh/config

    Returns:
        Dictionary of lower-cased option names to values

    Raises:
        ConfigError: If the SSH config doesn't exist
    """
    path = config_path or Path(SSH_CONFIG_PATH).expanduser()
    if not path.exists():
        raise ConfigError(f"{path} does not exist")

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    return dict(ssh_config.lookup(hostname))


def env_with(overrides: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Copy of the process environment with non-empty overrides applied"""
    env = dict(os.environ)
    for key, value in overrides.items():
        if value:
            env[key] = value
    return env
