"""
Unified exception definitions
"""
from typing import Optional


class WsConnectError(Exception):
    """Base exception class"""
    pass


class ConfigError(WsConnectError):
    """Configuration error"""
    pass


class VersionParseError(WsConnectError, ValueError):
    """Malformed semantic version string"""
    pass


class BinaryError(WsConnectError):
    """Managed binary error"""
    pass


class ResponseError(BinaryError):
    """Unexpected HTTP status while fetching the binary"""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"Unexpected response from {url}: HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class AccessDeniedError(BinaryError, PermissionError):
    """The binary location could not be written to"""

    def __init__(self, path, reason: Optional[str] = None):
        message = f"Access denied writing {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path


class ConnectionError(BinaryError):
    """Connection error"""
    pass


class MissingVersionError(BinaryError):
    """The binary ran but reported no usable version"""
    pass


class BinaryExecutionError(BinaryError):
    """The binary exited with a non-zero status"""

    def __init__(self, command: str, exit_code: int, output: str = ""):
        super().__init__(f"`{command}` exited with code {exit_code}: {output.strip()}")
        self.exit_code = exit_code
        self.output = output


class UnsignedBinaryError(BinaryError):
    """A downloaded binary could not be verified and was not allowed to run"""
    pass


class SSHConfigFormatError(WsConnectError):
    """Managed SSH config block is corrupted"""

    def __init__(self, message: str, host: Optional[str] = None):
        if host:
            message = f"{message} (deployment {host})"
        super().__init__(message)
        self.host = host


class HeaderCommandError(ConfigError, ValueError):
    """The header command failed or printed something other than headers"""
    pass
