"""
wsconnect - connect to remote development workspaces over SSH

Provides the pieces an IDE connector needs around a deployment's CLI:
- Managed CLI binary (version probing, conditional download, fallback location)
- Feature negotiation from the binary version
- SSH config synthesis (a managed Host block per deployment)
"""

__version__ = "0.1.0"

# Export core components
from .core import (
    Settings,
    WsConnectError,
    SSHConfigFormatError,
    load_ssh_config,
)

# Export domain models
from .domain.version import (
    SemanticVersion,
    Features,
    features_for,
)

from .domain.binary import (
    BinaryManager,
    BinaryDownloader,
    ensure_binary,
    find_binary,
)

from .domain.ssh import (
    WorkspaceAgent,
    SshConfigSynthesizer,
    SshConfigService,
)

__all__ = [
    # Version
    "__version__",
    # Settings
    "Settings",
    # Errors
    "WsConnectError",
    "SSHConfigFormatError",
    # Utilities
    "load_ssh_config",
    # Version negotiation
    "SemanticVersion",
    "Features",
    "features_for",
    # Binary lifecycle
    "BinaryManager",
    "BinaryDownloader",
    "ensure_binary",
    "find_binary",
    # SSH config
    "WorkspaceAgent",
    "SshConfigSynthesizer",
    "SshConfigService",
]
