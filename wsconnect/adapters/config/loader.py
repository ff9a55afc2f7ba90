"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

from ...core.constants import ENV_PREFIX, SSH_CONFIG_OPTIONS_ENV
from ...core.exceptions import ConfigError

_TRUE = ("true", "yes", "1")
_FALSE = ("false", "no", "0")

# Keys whose values are booleans, everything else stays a string
BOOLEAN_KEYS = (
    "binary.enable_downloads",
    "binary.enable_fallback",
    "binary.disable_signature_verification",
    "binary.signature_fallback",
    "binary.allow_unsigned",
    "ssh.wildcard",
    "ssh.disable_autostart",
)


def to_bool(value: Any, key: str = "value") -> bool:
    """
    Interpret true/false/yes/no/1/0.

    Raises:
        ConfigError: If value is not a recognised boolean
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


class ConfigLoader:
    """Configuration loader with priority support"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._env_prefix = ENV_PREFIX
        self._environ = environ

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration {path}: {e}") from e

    def env_mappings(self) -> Dict[str, str]:
        """Environment variable to config key"""
        p = self._env_prefix
        return {
            f"{p}DATA_DIRECTORY": "data_directory",
            f"{p}HEADER_COMMAND": "header_command",
            f"{p}BINARY_SOURCE": "binary.source",
            f"{p}BINARY_DIRECTORY": "binary.directory",
            f"{p}BINARY_NAME": "binary.name",
            f"{p}ENABLE_DOWNLOADS": "binary.enable_downloads",
            f"{p}ENABLE_BINARY_DIRECTORY_FALLBACK": "binary.enable_fallback",
            f"{p}DISABLE_SIGNATURE_VERIFICATION": "binary.disable_signature_verification",
            f"{p}SIGNING_KEY": "binary.signing_key",
            f"{p}SIGNATURE_FALLBACK": "binary.signature_fallback",
            f"{p}ALLOW_UNSIGNED_BINARY": "binary.allow_unsigned",
            f"{p}TLS_CA_PATH": "tls.ca_path",
            f"{p}TLS_CERT_PATH": "tls.cert_path",
            f"{p}TLS_KEY_PATH": "tls.key_path",
            f"{p}TLS_ALTERNATE_HOSTNAME": "tls.alternate_hostname",
            f"{p}SSH_CONFIG_PATH": "ssh.config_path",
            f"{p}SSH_LOG_DIRECTORY": "ssh.log_directory",
            f"{p}SSH_WILDCARD": "ssh.wildcard",
            f"{p}DISABLE_AUTOSTART": "ssh.disable_autostart",
            f"{p}NETWORK_INFO_DIR": "ssh.network_info_dir",
            SSH_CONFIG_OPTIONS_ENV: "ssh.config_options",
        }

    def load_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        environ = os.environ if self._environ is None else self._environ
        config: Dict[str, Any] = {}

        for env_key, config_key in self.env_mappings().items():
            value = environ.get(env_key)
            if value:
                if config_key in BOOLEAN_KEYS:
                    value = to_bool(value, env_key)
                # Handle nested keys
                if "." in config_key:
                    section, name = config_key.split(".", 1)
                    config.setdefault(section, {})[name] = value
                else:
                    config[config_key] = value

        return config

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result = self._deep_merge(result, config)

        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if isinstance(value, dict):
                current = result.get(key)
                result[key] = self._deep_merge(current if isinstance(current, dict) else {}, value)
            elif value is not None:
                result[key] = value

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML > defaults

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides, None values are ignored
            use_env: Whether to load from environment variables

        Returns:
            Merged configuration dictionary
        """
        configs = []

        if toml_path:
            configs.append(self.load_toml(toml_path))

        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)

        if cli_overrides:
            configs.append(cli_overrides)

        return self.merge_configs(*configs)
