from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from helpers import DEPLOYMENT_URL, posix_only, write_binary, write_script
from wsconnect.adapters.cli.app import app
from wsconnect.adapters.config.loader import ConfigLoader
from wsconnect.adapters.config.settings_parser import build_settings
from wsconnect.core.exceptions import UnsignedBinaryError
from wsconnect.core.settings import Settings

pytestmark = posix_only

runner = CliRunner()
ALIAS = "wsconnect--alice--dev.main--test.example.com"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CODER_SSH_CONFIG_OPTIONS",):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "wsconnect.toml"
    path.write_text(
        f'data_directory = "{tmp_path / "data"}"\n'
        "\n"
        "[binary]\n"
        "enable_downloads = false\n"
        "\n"
        "[ssh]\n"
        f'config_path = "{tmp_path / "ssh_config"}"\n'
        f'network_info_dir = "{tmp_path / "net"}"\n'
    )
    return path


def _settings(config_file: Path) -> Settings:
    return build_settings(ConfigLoader(environ={}).load(toml_path=config_file))


def _invoke(config_file: Path, *args: str):
    return runner.invoke(app, ["--log-level", "ERROR", "--config", str(config_file), *args])


def test_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("ensure", "login", "features", "config-ssh", "host"):
        assert command in result.output


def test_ensure_uses_matching_binary(config_file: Path) -> None:
    path = write_binary(_settings(config_file).bin_path(DEPLOYMENT_URL), "2.19.0")

    result = _invoke(config_file, "ensure", DEPLOYMENT_URL, "2.19.0")

    assert result.exit_code == 0, result.output
    assert "2.19.0" in result.output
    assert "wildcard_ssh" in result.output
    assert path.exists()


def test_ensure_without_downloads_or_binary(config_file: Path) -> None:
    result = _invoke(config_file, "ensure", DEPLOYMENT_URL, "2.19.0")
    assert result.exit_code == 0, result.output
    assert "Not downloaded" in result.output


def test_ensure_reports_missing_config(tmp_path: Path) -> None:
    result = _invoke(tmp_path / "missing.toml", "ensure", DEPLOYMENT_URL, "2.19.0")
    assert result.exit_code == 1


def test_ensure_refused_unsigned_binary(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def refuse(settings, url, build_version, **kwargs):
        seen["settings"] = settings
        seen["confirm"] = kwargs.get("confirm_unsigned")
        raise UnsignedBinaryError("Running unsigned CLI from https://test.example.com/bin/coder was denied")

    monkeypatch.setattr("wsconnect.adapters.cli.binary.ensure_binary", refuse)

    result = _invoke(
        config_file, "ensure", DEPLOYMENT_URL, "2.19.0", "--signing-key", "/keys/release.asc", "--no-allow-unsigned"
    )

    assert result.exit_code == 1
    assert seen["settings"].signing_key_path == "/keys/release.asc"
    assert seen["settings"].allow_unsigned_binary_without_prompt is False
    assert callable(seen["confirm"])


def test_features(config_file: Path) -> None:
    write_binary(_settings(config_file).bin_path(DEPLOYMENT_URL), "2.13.0")

    result = _invoke(config_file, "features", DEPLOYMENT_URL)

    assert result.exit_code == 0, result.output
    assert "report_workspace_usage" in result.output
    assert "2.13.0" in result.output


def test_config_ssh_add_and_remove(config_file: Path, tmp_path: Path) -> None:
    ssh_config = tmp_path / "ssh_config"
    ssh_config.write_text("Host foo\n  User me\n")
    write_binary(_settings(config_file).bin_path(DEPLOYMENT_URL), "2.13.0")

    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "alice/dev.main")

    assert result.exit_code == 0, result.output
    text = ssh_config.read_text()
    assert text.startswith("Host foo\n  User me\n\n# --- START WSCONNECT test.example.com\n")
    assert f"Host {ALIAS}\n" in text
    assert "--usage-app=jetbrains alice/dev.main" in text

    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "--remove")

    assert result.exit_code == 0, result.output
    assert ssh_config.read_text() == "Host foo\n  User me\n"


def test_config_ssh_wildcard(config_file: Path, tmp_path: Path) -> None:
    write_binary(_settings(config_file).bin_path(DEPLOYMENT_URL), "2.19.0")

    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "alice/dev.main", "--wildcard")

    assert result.exit_code == 0, result.output
    assert "Host wsconnect-test.example.com--*\n" in (tmp_path / "ssh_config").read_text()


def test_config_ssh_requires_workspaces(config_file: Path) -> None:
    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL)
    assert result.exit_code == 1


def test_config_ssh_rejects_bad_workspace(config_file: Path, tmp_path: Path) -> None:
    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "not-a-workspace")
    assert result.exit_code == 1
    assert not (tmp_path / "ssh_config").exists()


def test_config_ssh_leaves_malformed_config_alone(config_file: Path, tmp_path: Path) -> None:
    ssh_config = tmp_path / "ssh_config"
    broken = "Host foo\n# --- START WSCONNECT test.example.com\nHost x\n"
    ssh_config.write_text(broken)

    result = _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "alice/dev.main")

    assert result.exit_code == 1
    assert ssh_config.read_text() == broken


def test_host_lookup(config_file: Path) -> None:
    write_binary(_settings(config_file).bin_path(DEPLOYMENT_URL), "2.0.0")
    assert _invoke(config_file, "config-ssh", DEPLOYMENT_URL, "alice/dev.main").exit_code == 0

    result = _invoke(config_file, "host", DEPLOYMENT_URL, "alice/dev.main")

    assert result.exit_code == 0, result.output
    assert "stricthostkeychecking" in result.output
    assert "proxycommand" in result.output


def test_login(config_file: Path, tmp_path: Path) -> None:
    args_file = tmp_path / "args"
    write_script(_settings(config_file).bin_path(DEPLOYMENT_URL), f"#!/bin/sh\necho \"$@\" > {args_file}\n")

    result = _invoke(config_file, "login", DEPLOYMENT_URL, "--token", "secret-token")

    assert result.exit_code == 0, result.output
    assert args_file.read_text().split()[:4] == ["login", DEPLOYMENT_URL, "--token", "secret-token"]


def test_login_failure(config_file: Path) -> None:
    write_script(_settings(config_file).bin_path(DEPLOYMENT_URL), "#!/bin/sh\nexit 1\n")
    result = _invoke(config_file, "login", DEPLOYMENT_URL, "--token", "secret-token")
    assert result.exit_code == 1
