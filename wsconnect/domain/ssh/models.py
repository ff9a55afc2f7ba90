"""
SSH config domain models
"""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, order=True)
class WorkspaceAgent:
    """
    The minimal view of a (workspace, agent) pair needed to route SSH.

    Written as `owner/workspace.agent`, which is also what the managed
    binary expects on its command line.
    """
    owner_name: str
    workspace_name: str
    agent_name: str

    @classmethod
    def parse(cls, value: str) -> "WorkspaceAgent":
        """
        Parse `owner/workspace.agent`.

        Raises:
            ValueError: If any of the three parts is missing
        """
        owner, sep, rest = value.strip().partition("/")
        workspace, dot, agent = rest.partition(".")
        if not sep or not dot or not owner or not workspace or not agent:
            raise ValueError(f"Expected owner/workspace.agent, got {value!r}")
        return cls(owner_name=owner, workspace_name=workspace, agent_name=agent)

    @property
    def target(self) -> str:
        return f"{self.owner_name}/{self.workspace_name}.{self.agent_name}"

    def __str__(self) -> str:
        return self.target


@dataclass
class SshHostEntry:
    """One Host stanza of the managed block"""
    host_alias: str
    proxy_command_args: List[str]
    # Indented below the ProxyCommand line, in order
    options: List[str] = field(default_factory=list)

    @property
    def proxy_command(self) -> str:
        return " ".join(self.proxy_command_args)


@dataclass(frozen=True)
class BlockLocation:
    """
    Where a managed block sits in an SSH config.

    start includes the whitespace before the start marker and end the
    whitespace after the end marker; that whitespace is kept in leading and
    trailing so a replacement can put it back.
    """
    start: int
    end: int
    leading: str
    trailing: str
