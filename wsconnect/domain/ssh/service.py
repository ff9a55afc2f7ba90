"""
SSH config service - business logic
"""
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ...core.constants import SSH_CONFIG_MODE
from ...core.logging import get_logger
from ...core.settings import Settings
from ...core.utils import expand_path, load_ssh_config
from ..version import Features
from .models import WorkspaceAgent
from .synthesizer import SshConfigSynthesizer

logger = get_logger(__name__)


class SshConfigService:
    """
    Read the user's SSH config, rewrite this deployment's block and write
    the result back.

    The only component that touches the SSH config file.
    """

    def __init__(self, settings: Settings, deployment_url: str, binary_path: Path, config_path: Path):
        self.settings = settings
        self.deployment_url = deployment_url
        self.synthesizer = SshConfigSynthesizer(settings, deployment_url, binary_path, config_path)

    @property
    def path(self) -> Path:
        return expand_path(self.settings.ssh_config_path)

    def read(self) -> Optional[str]:
        """Return the contents of the SSH config or None if it does not exist"""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def configure(self, workspace_agents: Iterable[WorkspaceAgent], features: Features) -> Optional[str]:
        """
        Add, replace or remove the managed block.

        An empty workspace_agents removes the block.

        Returns:
            The written config, or None if the file did not need to change

        Raises:
            SSHConfigFormatError: If the existing block is malformed
            ValueError: If an argument of the ProxyCommand contains a newline
        """
        logger.info(f"Configuring SSH config at {self.path}")
        contents = self.synthesizer.synthesize(self.read(), workspace_agents, features)
        self.write(contents)
        return contents

    def write(self, contents: Optional[str]) -> None:
        """Write the provided SSH config or do nothing if None"""
        if contents is None:
            return

        path = self.path
        created = not path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents, encoding="utf-8")
        if created:
            path.chmod(SSH_CONFIG_MODE)

        # The managed binary will not create its log directory.
        log_dir = self.settings.ssh_log_directory
        if log_dir and log_dir.strip():
            expand_path(log_dir).mkdir(parents=True, exist_ok=True)

    def host_alias(self, workspace_agent: WorkspaceAgent, features: Features) -> str:
        return self.synthesizer.host_alias(workspace_agent, features)

    def lookup(self, alias: str) -> Dict[str, Any]:
        """
        Resolve the options SSH would use for alias.

        Raises:
            ConfigError: If the SSH config does not exist
        """
        return load_ssh_config(alias, self.path)
