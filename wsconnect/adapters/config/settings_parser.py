"""
Settings configuration parser
"""
from typing import Dict, Any, Optional

from ...core.exceptions import ConfigError
from ...core.settings import Settings
from .loader import to_bool


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def build_settings(cfg: Dict[str, Any]) -> Settings:
    """
    Build Settings from a merged configuration dictionary.

    Layout:

        data_directory = "..."
        header_command = "..."

        [binary]
        source, directory, name, enable_downloads, enable_fallback,
        disable_signature_verification, signing_key, signature_fallback,
        allow_unsigned

        [tls]
        ca_path, cert_path, key_path, alternate_hostname

        [ssh]
        config_path, log_directory, config_options, wildcard,
        disable_autostart, network_info_dir

    Unset keys keep the Settings defaults.

    Raises:
        ConfigError: If a value has the wrong type
    """
    binary = _section(cfg, "binary")
    ssh = _section(cfg, "ssh")
    tls = _section(cfg, "tls")

    values: Dict[str, Any] = {
        "data_directory": _text(cfg.get("data_directory")),
        "header_command": _text(cfg.get("header_command")),
        "binary_source": _text(binary.get("source")),
        "binary_directory": _text(binary.get("directory")),
        "binary_name": _text(binary.get("name")),
        "signing_key_path": _text(binary.get("signing_key")),
        "tls_ca_path": _text(tls.get("ca_path")),
        "tls_cert_path": _text(tls.get("cert_path")),
        "tls_key_path": _text(tls.get("key_path")),
        "tls_alternate_hostname": _text(tls.get("alternate_hostname")),
        "ssh_log_directory": _text(ssh.get("log_directory")),
        "ssh_config_options": _text(ssh.get("config_options")),
        "network_info_dir": _text(ssh.get("network_info_dir")),
    }
    if "config_path" in ssh:
        values["ssh_config_path"] = str(ssh["config_path"])

    booleans = {
        "enable_downloads": ("binary.enable_downloads", binary.get("enable_downloads")),
        "enable_binary_directory_fallback": ("binary.enable_fallback", binary.get("enable_fallback")),
        "disable_signature_verification": (
            "binary.disable_signature_verification",
            binary.get("disable_signature_verification"),
        ),
        "signature_fallback": ("binary.signature_fallback", binary.get("signature_fallback")),
        "allow_unsigned_binary_without_prompt": ("binary.allow_unsigned", binary.get("allow_unsigned")),
        "ssh_wildcard_config_enabled": ("ssh.wildcard", ssh.get("wildcard")),
        "disable_autostart": ("ssh.disable_autostart", ssh.get("disable_autostart")),
    }
    for field_name, (key, value) in booleans.items():
        if value is not None:
            values[field_name] = to_bool(value, key)

    return Settings(**values)
