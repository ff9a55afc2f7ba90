"""
Version domain module
"""
from .semver import SemanticVersion, compare
from .features import Features, features_for

__all__ = [
    "SemanticVersion",
    "compare",
    "Features",
    "features_for",
]
