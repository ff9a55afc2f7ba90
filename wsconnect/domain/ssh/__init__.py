"""
SSH config domain module
"""
from .models import WorkspaceAgent, SshHostEntry, BlockLocation
from .synthesizer import SshConfigSynthesizer, markers, locate
from .service import SshConfigService

__all__ = [
    "WorkspaceAgent",
    "SshHostEntry",
    "BlockLocation",
    "SshConfigSynthesizer",
    "markers",
    "locate",
    "SshConfigService",
]
