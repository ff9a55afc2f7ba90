"""
Managed SSH config block generation and placement
"""
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ...core.constants import (
    END_MARKER_PREFIX,
    HOST_ALIAS_PREFIX,
    SSH_INDENT,
    SSH_OPTIONS,
    START_MARKER_PREFIX,
    USAGE_APP_FLAG,
)
from ...core.exceptions import SSHConfigFormatError
from ...core.logging import get_logger
from ...core.settings import Settings
from ...core.utils import escape, escape_subcommand, safe_host
from ..version import Features
from .models import BlockLocation, SshHostEntry, WorkspaceAgent

logger = get_logger(__name__)


# ============================================================
# Markers
# ============================================================

def markers(host: str) -> Tuple[str, str]:
    """Start and end marker lines for a deployment host"""
    return f"{START_MARKER_PREFIX} {host}", f"{END_MARKER_PREFIX} {host}"


def locate(text: str, start_marker: str, end_marker: str, host: Optional[str] = None) -> Optional[BlockLocation]:
    """
    Find the managed block in text.

    The markers are searched for independently; a marker must not be
    followed by anything but whitespace, so one host never matches another
    host it is a prefix of.

    Returns:
        The block location, or None if neither marker is present

    Raises:
        SSHConfigFormatError: If only one marker is present or the start
            marker comes after the end marker
    """
    start = re.search(r"(\s*)" + re.escape(start_marker) + r"(?!\S)", text)
    end = re.search(re.escape(end_marker) + r"(?!\S)(\s*)", text)

    if start is None and end is None:
        return None
    if start is None:
        raise SSHConfigFormatError("End block exists but no start block", host)
    if end is None:
        raise SSHConfigFormatError("Start block exists but no end block", host)
    if start.start() > end.start():
        raise SSHConfigFormatError("Start block found after end block", host)

    return BlockLocation(
        start=start.start(),
        end=end.end(),
        leading=start.group(1),
        trailing=end.group(1),
    )


# ============================================================
# Synthesizer
# ============================================================

class SshConfigSynthesizer:
    """
    Build the managed block for one deployment and merge it into an
    existing SSH config.

    Everything outside the block is left byte-for-byte untouched.
    """

    def __init__(self, settings: Settings, deployment_url: str, binary_path: Path, config_path: Path):
        """
        Initialize synthesizer.

        Args:
            settings: Connector settings
            deployment_url: Deployment the block routes to
            binary_path: Managed binary used as the ProxyCommand
            config_path: Global config directory passed to the binary
        """
        self.settings = settings
        self.deployment_url = deployment_url
        self.binary_path = binary_path
        self.config_path = config_path
        self.host = safe_host(deployment_url)
        self.start_marker, self.end_marker = markers(self.host)

    @property
    def hostname_prefix(self) -> str:
        return f"{HOST_ALIAS_PREFIX}-{self.host}"

    def wildcard_enabled(self, features: Features) -> bool:
        return self.settings.ssh_wildcard_config_enabled and features.wildcard_ssh

    def host_alias(self, pair: WorkspaceAgent, features: Features) -> str:
        """SSH Host alias under which a workspace agent is reachable"""
        if self.wildcard_enabled(features):
            return f"{self.hostname_prefix}--{pair.owner_name}--{pair.workspace_name}.{pair.agent_name}"
        return f"{HOST_ALIAS_PREFIX}--{pair.owner_name}--{pair.workspace_name}.{pair.agent_name}--{self.host}"

    def proxy_args(self, features: Features) -> List[str]:
        """
        ProxyCommand arguments shared by every stanza.

        Raises:
            ValueError: If a path, URL or the header command contains a newline
        """
        settings = self.settings
        args = [
            escape(str(self.binary_path)),
            "--global-config",
            escape(str(self.config_path)),
            # CODER_URL may be set and would override the URL file in the
            # config directory.
            "--url",
            escape(self.deployment_url),
        ]
        if settings.header_command and settings.header_command.strip():
            args += ["--header-command", escape_subcommand(settings.header_command)]
        args += ["ssh", "--stdio"]
        if settings.disable_autostart and features.disable_autostart:
            args.append("--disable-autostart")
        args.append(f"--network-info-dir {escape(settings.resolved_network_info_dir)}")
        if settings.ssh_log_directory and settings.ssh_log_directory.strip():
            args += ["--log-dir", escape(settings.ssh_log_directory)]
        if features.report_workspace_usage:
            args.append(USAGE_APP_FLAG)
        return args

    def options(self) -> List[str]:
        """SSH options every stanza carries: the fixed set, then user extras"""
        options = list(SSH_OPTIONS)
        extra = self.settings.ssh_config_options
        if extra and extra.strip():
            options += [line.strip() for line in extra.splitlines() if line.strip()]
        return options

    def entries(self, pairs: Iterable[WorkspaceAgent], features: Features) -> List[SshHostEntry]:
        """Host entries for the block, in a stable order"""
        base = self.proxy_args(features)
        options = self.options()
        if self.wildcard_enabled(features):
            return [
                SshHostEntry(
                    host_alias=f"{self.hostname_prefix}--*",
                    proxy_command_args=base + ["--ssh-host-prefix", f"{self.hostname_prefix}--", "%h"],
                    options=options,
                )
            ]
        return [
            SshHostEntry(host_alias=self.host_alias(pair, features), proxy_command_args=base + [pair.target], options=options)
            for pair in sorted(set(pairs))
        ]

    def _stanza(self, entry: SshHostEntry) -> str:
        lines = [
            f"Host {entry.host_alias}",
            f"{SSH_INDENT}ProxyCommand {entry.proxy_command}",
            *(SSH_INDENT + option for option in entry.options),
        ]
        return "\n".join(lines) + "\n"

    def build_block(self, pairs: Iterable[WorkspaceAgent], features: Features) -> str:
        """The managed block, markers included, without a trailing newline"""
        stanzas = [self._stanza(entry) for entry in self.entries(pairs, features)]
        return self.start_marker + "\n" + "\n".join(stanzas) + "\n" + self.end_marker

    def apply(self, existing: Optional[str], block: str, is_removing: bool) -> Optional[str]:
        """
        Merge block into an existing SSH config.

        Removing a block that was appended to the end of a file gives back
        the file as it was before the append.

        Args:
            existing: Current config text, None if the file does not exist
            block: Output of build_block()
            is_removing: Drop the block instead of writing it

        Returns:
            The new config text, or None if nothing needs to change
        """
        location = locate(existing, self.start_marker, self.end_marker, self.host) if existing else None

        if location is None and is_removing:
            logger.info("No workspaces and no existing config blocks to remove")
            return None

        if existing is None:
            logger.info("No existing SSH config to modify")
            return block + "\n"

        if location is None:
            logger.info("Appending config block")
            if not existing:
                return block + "\n"
            return existing + "\n" + block + "\n"

        before = existing[:location.start]
        after = existing[location.end:]

        if is_removing:
            logger.info("No workspaces; removing config block")
            if not after:
                # Appending added one line break before the block.
                leading = location.leading
                return before + (leading[:-1] if leading.endswith("\n") else leading)
            # Keep the newlines after the block unless it started the file,
            # otherwise the lines around it would be joined.
            trailing = location.trailing if location.start > 0 else ""
            return before + trailing + after

        logger.info("Replacing existing config block")
        return before + location.leading + block + location.trailing + after

    def synthesize(
        self,
        existing: Optional[str],
        pairs: Iterable[WorkspaceAgent],
        features: Features,
    ) -> Optional[str]:
        """Build the block for pairs and merge it; no pairs removes the block"""
        pairs = list(pairs)
        block = self.build_block(pairs, features)
        return self.apply(existing, block, is_removing=not pairs)
