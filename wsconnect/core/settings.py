"""
Connector settings and per-deployment path derivation
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from .constants import (
    BINARY_SOURCE_PATH,
    CONFIG_DIR_NAME,
    NETWORK_INFO_DIR_NAME,
    SIGNATURE_EXTENSION,
    SSH_CONFIG_PATH,
)
from .system import default_binary_name, default_data_dir, get_arch, get_os, OS
from .utils import expand_path, host_dir_name, is_absolute_url, with_path


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass
class Settings:
    """
    Settings consumed by the binary lifecycle and SSH config layers.

    Only the values are stored here; nothing is persisted.
    """
    # Where to fetch the binary. Absolute URLs are used as-is, anything else
    # is treated as a path on the deployment.
    binary_source: Optional[str] = None
    # Directories are created here per deployment to hold the binary.
    # Defaults to the data directory.
    binary_directory: Optional[str] = None
    # Name of the downloaded binary, defaults to the name for this OS/arch.
    binary_name: Optional[str] = None
    # Plugin data, including the binary when binary_directory is unset.
    data_directory: Optional[str] = None
    global_data_directory: str = field(default_factory=lambda: str(default_data_dir()))

    enable_downloads: bool = True
    enable_binary_directory_fallback: bool = False
    header_command: Optional[str] = None

    # Verify downloaded binaries against a detached .asc signature made with
    # the key in signing_key_path.
    disable_signature_verification: bool = False
    signing_key_path: Optional[str] = None
    # Look for the signature on the releases server when the deployment has none.
    signature_fallback: bool = False
    allow_unsigned_binary_without_prompt: bool = False

    # TLS for binary downloads
    tls_ca_path: Optional[str] = None
    tls_cert_path: Optional[str] = None
    tls_key_path: Optional[str] = None
    # Name the server certificate is checked against, and sent as SNI,
    # when it does not match the deployment host.
    tls_alternate_hostname: Optional[str] = None

    disable_autostart: bool = field(default_factory=lambda: get_os() == OS.MAC)
    ssh_wildcard_config_enabled: bool = False
    ssh_config_path: str = field(default_factory=lambda: str(Path(SSH_CONFIG_PATH).expanduser()))
    ssh_log_directory: Optional[str] = None
    ssh_config_options: Optional[str] = None
    network_info_dir: Optional[str] = None

    @property
    def default_binary_name(self) -> str:
        """Binary name the deployment serves for this OS and architecture"""
        return default_binary_name(get_os(), get_arch())

    @property
    def signature_name(self) -> str:
        """Detached signature published next to the binary, e.g. coder-linux-amd64.asc"""
        return self.default_binary_name.split(".")[0] + SIGNATURE_EXTENSION

    @property
    def resolved_binary_name(self) -> str:
        return self.default_binary_name if _blank(self.binary_name) else self.binary_name.strip()

    @property
    def resolved_network_info_dir(self) -> str:
        if not _blank(self.network_info_dir):
            return str(expand_path(self.network_info_dir))
        return str(Path(self.global_data_directory) / NETWORK_INFO_DIR_NAME)

    def data_root(self) -> Path:
        """Data directory root, before the deployment host is appended"""
        if _blank(self.data_directory):
            return Path(self.global_data_directory)
        return expand_path(self.data_directory)

    def data_dir(self, url: str) -> Path:
        """Where the specified deployment should put its data"""
        return (self.data_root() / host_dir_name(url)).absolute()

    def config_dir(self, url: str) -> Path:
        """Global config directory handed to the binary for this deployment"""
        return self.data_dir(url) / CONFIG_DIR_NAME

    def bin_source(self, url: str) -> str:
        """From where the specified deployment should download the binary"""
        if _blank(self.binary_source):
            return with_path(url, f"{BINARY_SOURCE_PATH}/{self.default_binary_name}")
        source = self.binary_source.strip()
        if is_absolute_url(source):
            return source
        return with_path(url, source)

    def bin_path(self, url: str, force_fallback: bool = False) -> Path:
        """To where the specified deployment should download the binary"""
        if force_fallback or _blank(self.binary_directory):
            directory = self.data_dir(url)
        else:
            directory = expand_path(self.binary_directory) / host_dir_name(url)
        return (directory / self.resolved_binary_name).absolute()

    def copy(self, **changes) -> "Settings":
        """Return a copy with the given fields replaced"""
        return replace(self, **changes)
