"""
Host platform detection
"""
from .platform import (
    OS,
    Arch,
    get_os,
    get_arch,
    default_binary_name,
    default_data_dir,
)

__all__ = [
    "OS",
    "Arch",
    "get_os",
    "get_arch",
    "default_binary_name",
    "default_data_dir",
]
