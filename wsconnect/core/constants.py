"""
Project constants definitions
"""

# ============================================================
# Managed Binary
# ============================================================

CLI_NAME = "coder"
BINARY_SOURCE_PATH = "/bin"
DOWNLOAD_CHUNK_SIZE = 8192
DOWNLOAD_TIMEOUT = 60.0
VERSION_COMMAND = ("version", "--output", "json")
CONFIG_DIR_NAME = "config"

# Detached signatures
SIGNATURE_EXTENSION = ".asc"
RELEASES_SIGNATURE_URL = "https://releases.coder.com/coder-cli/{version}/{name}"

# Environment passed to the managed binary and the header command
HEADER_COMMAND_ENV = "CODER_HEADER_COMMAND"
HEADER_COMMAND_URL_ENV = "CODER_URL"

# ============================================================
# Feature Gates
# ============================================================

DISABLE_AUTOSTART_VERSION = (2, 5, 0)
REPORT_WORKSPACE_USAGE_VERSION = (2, 13, 0)
WILDCARD_SSH_VERSION = (2, 19, 0)

# ============================================================
# SSH Config Markers
# ============================================================

START_MARKER_PREFIX = "# --- START WSCONNECT"
END_MARKER_PREFIX = "# --- END WSCONNECT"
HOST_ALIAS_PREFIX = "wsconnect"

SSH_OPTIONS = (
    "ConnectTimeout 0",
    "StrictHostKeyChecking no",
    "UserKnownHostsFile /dev/null",
    "LogLevel ERROR",
    "SetEnv CODER_SSH_SESSION_TYPE=JetBrains",
)
SSH_INDENT = "  "
USAGE_APP_FLAG = "--usage-app=jetbrains"

# ============================================================
# SSH Config
# ============================================================

SSH_CONFIG_PATH = "~/.ssh/config"
SSH_CONFIG_MODE = 0o600

# ============================================================
# Default Directories
# ============================================================

APP_DIR_NAME = "wsconnect"
NETWORK_INFO_DIR_NAME = "ssh-network-metrics"

# ============================================================
# Configuration Environment
# ============================================================

ENV_PREFIX = "WSCONNECT_"
SSH_CONFIG_OPTIONS_ENV = "CODER_SSH_CONFIG_OPTIONS"
