from __future__ import annotations

import hashlib
import os
import stat
from pathlib import Path

import httpx
import pytest


DEPLOYMENT_URL = "https://test.example.com"

posix_only = pytest.mark.skipif(os.name == "nt", reason="fake binaries are POSIX shell scripts")


def version_script(version: str) -> str:
    return f"#!/bin/sh\necho '{{\"version\": \"{version}\"}}'\n"


def write_script(path: Path, body: str) -> Path:
    """Write an executable shell script, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_binary(path: Path, version: str) -> Path:
    return write_script(path, version_script(version))


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


class BinaryServer:
    """httpx mock transport serving one binary with ETag support, and its
    detached signature when one is given."""

    def __init__(self, body: bytes, status_code: int = 200, signature: bytes | None = None) -> None:
        self.body = body
        self.status_code = status_code
        self.signature = signature
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith(".asc"):
            if self.signature is None:
                return httpx.Response(404)
            return httpx.Response(200, content=self.signature)
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        if request.headers.get("If-None-Match") == f'"{sha1(self.body)}"':
            return httpx.Response(304)
        return httpx.Response(200, content=self.body)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))
