"""
Semantic version parsing and comparison
"""
import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional, Tuple

from ...core.exceptions import VersionParseError

_SEMVER = re.compile(
    r"^v?(?P<major>[0-9]+)"
    r"\.(?P<minor>[0-9]+)"
    r"\.(?P<patch>[0-9]+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """
    A `vMAJOR.MINOR.PATCH[-pre][+build]` version.

    Equality, ordering and hashing only look at (major, minor, patch). The
    prerelease and build metadata are kept for display, so a development
    build such as 1.2.3-devel+abc123 is the same version as the 1.2.3 release.
    This also means a downgrade that only shows up in the build metadata is
    not detected.
    """
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = field(default=None)
    build_metadata: Optional[str] = field(default=None)

    @classmethod
    def parse(cls, text: str) -> "SemanticVersion":
        """
        Parse a version string.

        Raises:
            VersionParseError: If text is not a semantic version
        """
        if not isinstance(text, str):
            raise VersionParseError(f"Version must be a string, got {type(text).__name__}")
        match = _SEMVER.match(text.strip())
        if match is None:
            raise VersionParseError(f"Invalid version: {text!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build_metadata=match.group("build"),
        )

    @classmethod
    def try_parse(cls, text: Optional[str]) -> Optional["SemanticVersion"]:
        """Like parse() but returns None for malformed input"""
        if text is None:
            return None
        try:
            return cls.parse(text)
        except VersionParseError:
            return None

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.core == other.core

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.core < other.core

    def __hash__(self) -> int:
        return hash(self.core)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build_metadata:
            text += f"+{self.build_metadata}"
        return text


def compare(a: SemanticVersion, b: SemanticVersion) -> int:
    """Return -1, 0 or 1 comparing major, minor and patch only"""
    if a.core < b.core:
        return -1
    if a.core > b.core:
        return 1
    return 0
