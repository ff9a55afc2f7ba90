"""
Host operating system and architecture detection
"""
import os
import platform
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from ..constants import APP_DIR_NAME, CLI_NAME
from ..logging import get_logger

logger = get_logger(__name__)


class OS(str, Enum):
    """Supported client operating systems"""
    WINDOWS = "windows"
    LINUX = "linux"
    MAC = "darwin"


class Arch(str, Enum):
    """Supported client architectures"""
    AMD64 = "amd64"
    ARM64 = "arm64"
    ARMV7 = "armv7"


def get_os(system: Optional[str] = None) -> Optional[OS]:
    """Return the current OS, or None if it is not one we ship binaries for"""
    name = (system if system is not None else platform.system()).lower()
    if name.startswith("win"):
        return OS.WINDOWS
    if name == "linux":
        return OS.LINUX
    if name in ("darwin", "mac", "macos"):
        return OS.MAC
    return None


def get_arch(machine: Optional[str] = None) -> Optional[Arch]:
    """Return the current architecture, or None if unknown"""
    name = (machine if machine is not None else platform.machine()).lower()
    if name in ("x86_64", "amd64", "x64"):
        return Arch.AMD64
    if name in ("aarch64", "arm64"):
        return Arch.ARM64
    if name.startswith("armv7"):
        return Arch.ARMV7
    return None


def default_binary_name(os_: Optional[OS], arch: Optional[Arch]) -> str:
    """
    Return the name of the binary (with extension) for the provided OS and
    architecture.

    Unknown combinations fall back to the amd64 build for the OS, and an
    unknown OS falls back to Windows amd64.
    """
    if os_ is None:
        logger.error("Could not resolve client OS and architecture, defaulting to Windows amd64")
        return f"{CLI_NAME}-windows-amd64.exe"

    if os_ == OS.WINDOWS:
        arch_name = arch.value if arch in (Arch.AMD64, Arch.ARM64) else Arch.AMD64.value
        return f"{CLI_NAME}-windows-{arch_name}.exe"
    if os_ == OS.LINUX:
        arch_name = arch.value if arch is not None else Arch.AMD64.value
        return f"{CLI_NAME}-linux-{arch_name}"
    arch_name = arch.value if arch in (Arch.AMD64, Arch.ARM64) else Arch.AMD64.value
    return f"{CLI_NAME}-darwin-{arch_name}"


def _env(env: Optional[Mapping[str, str]], name: str) -> str:
    source = os.environ if env is None else env
    return source.get(name, "") or ""


def default_data_dir(os_: Optional[OS] = None, env: Optional[Mapping[str, str]] = None) -> Path:
    """Per-user directory for downloaded binaries and deployment data"""
    os_ = os_ or get_os()
    home = _env(env, "HOME") or str(Path.home())
    if os_ == OS.WINDOWS:
        return Path(_env(env, "LOCALAPPDATA"), APP_DIR_NAME)
    if os_ == OS.MAC:
        return Path(home, "Library", "Application Support", APP_DIR_NAME)
    xdg = _env(env, "XDG_DATA_HOME")
    if xdg.strip():
        return Path(xdg, APP_DIR_NAME)
    return Path(home, ".local", "share", APP_DIR_NAME)

