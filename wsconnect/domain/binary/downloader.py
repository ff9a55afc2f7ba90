"""
Conditional HTTP download of the managed binary
"""
import ssl
import stat
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional, Union

import httpx

from ...core.constants import DOWNLOAD_CHUNK_SIZE, DOWNLOAD_TIMEOUT
from ...core.exceptions import AccessDeniedError, ConfigError, ConnectionError, ResponseError
from ...core.interfaces import Downloader, ProgressCallback
from ...core.logging import get_logger
from ...core.settings import Settings
from ...core.system import OS, get_os
from ...core.utils import expand_path, format_size
from .models import Downloaded, DownloadResult, NotModified

logger = get_logger(__name__)


def _given(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def tls_verify(settings: Settings) -> Union[ssl.SSLContext, bool]:
    """
    TLS verification for downloads: True for the system defaults, or an
    SSL context trusting the configured CA and presenting the configured
    client certificate.

    Raises:
        ConfigError: If a certificate or key cannot be loaded
    """
    ca_path = _given(settings.tls_ca_path)
    cert_path = _given(settings.tls_cert_path)
    key_path = _given(settings.tls_key_path)
    if ca_path is None and (cert_path is None or key_path is None):
        return True

    try:
        context = ssl.create_default_context(cafile=str(expand_path(ca_path)) if ca_path else None)
        if cert_path and key_path:
            context.load_cert_chain(str(expand_path(cert_path)), str(expand_path(key_path)))
    except (OSError, ssl.SSLError) as e:
        raise ConfigError(f"Cannot load TLS certificates: {e}") from e
    return context


class BinaryDownloader(Downloader):
    """
    Download engine for the managed binary.

    The SHA-1 of the cached binary is sent as an ETag so an unchanged binary
    comes back as 304 and nothing is written. Bodies are streamed to disk in
    fixed-size chunks; gzip transfer encoding is decoded transparently.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        verify: Union[ssl.SSLContext, bool] = True,
        sni_hostname: Optional[str] = None,
    ):
        """
        Initialize downloader.

        Args:
            client: httpx client to reuse, a short-lived one is created per
                download when omitted
            chunk_size: Bytes read per chunk
            verify: TLS verification for the short-lived clients
            sni_hostname: Server name to send and check the certificate
                against instead of the URL host
        """
        self.client = client
        self.chunk_size = chunk_size
        self.verify = verify
        self.sni_hostname = sni_hostname

    @classmethod
    def from_settings(cls, settings: Settings) -> "BinaryDownloader":
        return cls(verify=tls_verify(settings), sni_hostname=_given(settings.tls_alternate_hostname))

    @contextmanager
    def _open(self) -> Iterator[httpx.Client]:
        if self.client is not None:
            yield self.client
            return
        with httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True, verify=self.verify) as client:
            yield client

    def _extensions(self) -> Optional[dict]:
        if self.sni_hostname is None:
            return None
        return {"sni_hostname": self.sni_hostname}

    def download(
        self,
        url: str,
        local_path: Path,
        validator: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        label: Optional[str] = None,
    ) -> DownloadResult:
        """
        Download url to local_path.

        Args:
            url: Remote binary URL
            local_path: Destination file
            validator: SHA-1 of the cached binary, if any
            headers: Extra request headers
            on_progress: Called with a human-readable message after each chunk
            label: Shown next to the file name in progress messages

        Returns:
            Downloaded, or NotModified when the server answered 304

        Raises:
            ResponseError: On any status other than 200 or 304
            ConnectionError: If the server cannot be reached
            AccessDeniedError: If local_path cannot be written
        """
        request_headers = {"Accept-Encoding": "gzip"}
        if validator:
            request_headers["If-None-Match"] = f'"{validator}"'
        if headers:
            request_headers.update(headers)

        try:
            with self._open() as client:
                with client.stream("GET", url, headers=request_headers, extensions=self._extensions()) as response:
                    if response.status_code == httpx.codes.NOT_MODIFIED:
                        logger.info(f"Using cached binary at {local_path}")
                        if on_progress:
                            on_progress("Using cached binary")
                        return NotModified()

                    if response.status_code != httpx.codes.OK:
                        raise ResponseError(url, response.status_code)

                    logger.info(f"Downloading binary to {local_path}")
                    self._save(response, local_path, on_progress, label)
        except httpx.RequestError as e:
            raise ConnectionError(f"{e}: {url}") from e

        self._make_executable(local_path)
        return Downloaded(source=url, destination=local_path)

    def download_signature(
        self,
        url: str,
        local_path: Path,
        headers: Optional[Mapping[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[Downloaded]:
        """
        Download a detached signature to local_path.

        Returns:
            Downloaded, or None when the server answered 404

        Raises:
            ResponseError: On any other status than 200 or 404
            ConnectionError: If the server cannot be reached
            AccessDeniedError: If local_path cannot be written
        """
        logger.info(f"Downloading signature from {url}")
        try:
            with self._open() as client:
                with client.stream("GET", url, headers=dict(headers or {}), extensions=self._extensions()) as response:
                    if response.status_code == httpx.codes.NOT_FOUND:
                        logger.warning(f"Signature file not found at {url}")
                        return None

                    if response.status_code != httpx.codes.OK:
                        raise ResponseError(url, response.status_code)

                    self._save(response, local_path, on_progress, None)
        except httpx.RequestError as e:
            raise ConnectionError(f"{e}: {url}") from e

        return Downloaded(source=url, destination=local_path)

    def _save(
        self,
        response: httpx.Response,
        local_path: Path,
        on_progress: Optional[ProgressCallback],
        label: Optional[str],
    ) -> None:
        """Stream the (decoded) body to disk"""
        name = local_path.name
        prefix = f"{name} {label}" if label else name
        total = 0
        try:
            self.prepare_target(local_path)
            with open(local_path, "wb") as sink:
                for chunk in response.iter_bytes(chunk_size=self.chunk_size):
                    sink.write(chunk)
                    total += len(chunk)
                    if on_progress:
                        on_progress(f"{prefix} - {format_size(total)} downloaded")
        except AccessDeniedError:
            raise
        except PermissionError as e:
            raise AccessDeniedError(local_path, e.strerror) from e

    def prepare_target(self, local_path: Path) -> None:
        """Remove any previous file and create the parent directories"""
        local_path.unlink(missing_ok=True)
        local_path.parent.mkdir(parents=True, exist_ok=True)

    def _make_executable(self, local_path: Path) -> None:
        if get_os() == OS.WINDOWS:
            return
        logger.info(f"Making {local_path} executable...")
        mode = local_path.stat().st_mode
        local_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
