"""
Capabilities of the managed binary, derived from its version
"""
from dataclasses import dataclass
from typing import Optional

from ...core.constants import (
    DISABLE_AUTOSTART_VERSION,
    REPORT_WORKSPACE_USAGE_VERSION,
    WILDCARD_SSH_VERSION,
)
from .semver import SemanticVersion


@dataclass(frozen=True)
class Features:
    """Supported features of the binary"""
    disable_autostart: bool = False
    report_workspace_usage: bool = False
    wildcard_ssh: bool = False


def features_for(version: Optional[SemanticVersion]) -> Features:
    """
    Map a binary version to its feature set.

    An unknown version gets no features so callers keep working with the
    most conservative behaviour.
    """
    if version is None:
        return Features()
    return Features(
        disable_autostart=version.core >= DISABLE_AUTOSTART_VERSION,
        report_workspace_usage=version.core >= REPORT_WORKSPACE_USAGE_VERSION,
        wildcard_ssh=version.core >= WILDCARD_SSH_VERSION,
    )
