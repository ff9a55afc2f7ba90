from __future__ import annotations

import pytest

from helpers import posix_only
from wsconnect.core.exceptions import ConfigError, HeaderCommandError
from wsconnect.core.system import OS
from wsconnect.core.utils import (
    escape,
    escape_subcommand,
    format_size,
    get_headers,
    host_dir_name,
    is_absolute_url,
    parse_headers,
    redact_token,
    safe_host,
    with_last_segment,
    with_path,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("/usr/bin/coder", "/usr/bin/coder"),
        ("/path with spaces/coder", '"/path with spaces/coder"'),
        ('say"hi"', 'say\\"hi\\"'),
        ('C:\\Program Files\\"q"', '"C:\\Program Files\\\\"q\\""'),
        ("tab\there", '"tab\there"'),
    ],
)
def test_escape(value: str, expected: str) -> None:
    assert escape(value) == expected


def test_escape_rejects_newlines() -> None:
    with pytest.raises(ValueError):
        escape("line\nbreak")


@pytest.mark.parametrize(
    ("value", "os_", "expected"),
    [
        ("my-header-command", OS.LINUX, '"my-header-command"'),
        ("echo $CODER_URL", OS.LINUX, '"echo \\$CODER_URL"'),
        ('printf "a=b"', OS.MAC, '"printf \\"a=b\\""'),
        ("echo $CODER_URL", OS.WINDOWS, '"echo $CODER_URL"'),
    ],
)
def test_escape_subcommand(value: str, os_: OS, expected: str) -> None:
    assert escape_subcommand(value, os_) == expected


def test_escape_subcommand_rejects_newlines() -> None:
    with pytest.raises(ValueError):
        escape_subcommand("a\nb", OS.LINUX)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://dev.example.com", "dev.example.com"),
        ("https://dev.example.com:443", "dev.example.com"),
        ("http://dev.example.com:80/path", "dev.example.com"),
        ("https://dev.example.com:8080", "dev.example.com-8080"),
        ("http://localhost:3000", "localhost-3000"),
        ("https://bücher.example", "xn--bcher-kva.example"),
    ],
)
def test_host_dir_name(url: str, expected: str) -> None:
    assert host_dir_name(url) == expected


def test_safe_host_converts_idn() -> None:
    assert safe_host("https://ñ.example.com/foo") == "xn--ida.example.com"


def test_url_helpers() -> None:
    assert is_absolute_url("https://example.com/bin/coder")
    assert not is_absolute_url("/bin/coder")
    assert not is_absolute_url("bin/coder")
    assert with_path("https://example.com:8080/ignored?q=1", "bin/coder") == "https://example.com:8080/bin/coder"


def test_with_last_segment() -> None:
    url = "https://example.com/bin/coder-linux-amd64"
    assert with_last_segment(url, "coder-linux-amd64.asc") == "https://example.com/bin/coder-linux-amd64.asc"
    assert with_last_segment("https://example.com/coder?x=1", "coder.asc") == "https://example.com/coder.asc"


def test_parse_headers() -> None:
    assert parse_headers("foo=bar\n\nbaz=qux=quux\nempty=\n") == {
        "foo": "bar",
        "baz": "qux=quux",
        "empty": "",
    }


@pytest.mark.parametrize("output", ["no-equals", "=value", "bad name=value", " lead=value"])
def test_parse_headers_rejects_invalid_lines(output: str) -> None:
    with pytest.raises(HeaderCommandError):
        parse_headers(output)


def test_header_errors_are_value_and_config_errors() -> None:
    with pytest.raises(ValueError):
        parse_headers("broken")
    with pytest.raises(ConfigError):
        parse_headers("broken")


def test_get_headers_without_command() -> None:
    assert get_headers("https://example.com", None) == {}
    assert get_headers("https://example.com", "   ") == {}


@posix_only
def test_get_headers_runs_command_with_url() -> None:
    headers = get_headers("https://test.example.com", 'printf "url=%s\\nx=y\\n" "$CODER_URL"')
    assert headers == {"url": "https://test.example.com", "x": "y"}


@posix_only
def test_get_headers_raises_on_failure() -> None:
    with pytest.raises(HeaderCommandError):
        get_headers("https://test.example.com", "exit 3")


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (1023, "1023 B"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5.0 MB"), (3 * 1024 ** 3, "3.0 GB")],
)
def test_format_size(size: int, expected: str) -> None:
    assert format_size(size) == expected


def test_redact_token() -> None:
    assert redact_token(["login", "https://x", "--token", "secret", "--global-config", "/c"]) == (
        "login https://x --token <redacted> --global-config /c"
    )
