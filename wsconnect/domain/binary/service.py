"""
Binary lifecycle service - business logic
"""
from pathlib import Path
from typing import Dict, Iterable, Optional

from ...core.constants import HEADER_COMMAND_ENV, RELEASES_SIGNATURE_URL
from ...core.exceptions import AccessDeniedError, ConnectionError, ResponseError, UnsignedBinaryError
from ...core.interfaces import ConfirmCallback, Downloader, ProgressCallback, SignatureVerifier
from ...core.logging import get_logger
from ...core.settings import Settings
from ...core.utils import env_with, get_headers, with_last_segment
from ..version import Features, SemanticVersion, features_for
from .downloader import BinaryDownloader
from .locations import primary_is_data_dir, resolve
from .models import BinaryDescriptor, CachedBinaryState, Downloaded, Invalid, SignatureNotFound, Valid
from .probe import exec_binary, hash_of, inspect_binary, matches_version, probe_version, read_version
from .signature import default_verifier

logger = get_logger(__name__)

DOWNLOADING_MESSAGE = "Downloading CLI..."


class BinaryManager:
    """
    Manage the binary of a single deployment.

    No direct dependency on the CLI layer; settings and the downloader are
    passed in.
    """

    def __init__(
        self,
        settings: Settings,
        deployment_url: str,
        force_fallback: bool = False,
        downloader: Optional[Downloader] = None,
        verifier: Optional[SignatureVerifier] = None,
        confirm_unsigned: Optional[ConfirmCallback] = None,
    ):
        """
        Initialize binary manager.

        Args:
            settings: Connector settings
            deployment_url: URL of the deployment this binary is for
            force_fallback: Use the data directory even when a binary
                directory is configured, for when it is not writable
            downloader: Download engine, defaults to BinaryDownloader with
                the TLS settings applied
            verifier: Signature check, defaults to GnupgVerifier with the
                configured signing key
            confirm_unsigned: Asked whether a binary that cannot be verified
                may run; without it such a binary is refused
        """
        self.settings = settings
        self.deployment_url = deployment_url
        self.descriptor: BinaryDescriptor = resolve(settings, deployment_url, force_fallback)
        self.downloader = downloader
        self.verifier = verifier if verifier is not None else default_verifier(settings.signing_key_path)
        self.confirm_unsigned = confirm_unsigned

    @property
    def remote_binary_url(self) -> str:
        return self.descriptor.remote_source_url

    @property
    def local_binary_path(self) -> Path:
        return self.descriptor.local_path

    @property
    def config_path(self) -> Path:
        return self.settings.config_dir(self.deployment_url)

    @property
    def is_fallback(self) -> bool:
        return self.descriptor.is_fallback

    def _env(self) -> Dict[str, str]:
        return env_with({HEADER_COMMAND_ENV: self.settings.header_command})

    def _get_downloader(self) -> Downloader:
        if self.downloader is None:
            self.downloader = BinaryDownloader.from_settings(self.settings)
        return self.downloader

    def download(self, build_version: str, on_progress: Optional[ProgressCallback] = None) -> bool:
        """
        Download the binary from the deployment if it changed, then verify
        its signature.

        Returns:
            True if a new binary was written, False if the cached one is current

        Raises:
            ResponseError, ConnectionError, AccessDeniedError: From the downloader
            ConfigError: If the header command fails or TLS is misconfigured
            UnsignedBinaryError: If the new binary failed verification, or
                could not be verified and was not accepted; it is deleted
        """
        validator = hash_of(self.local_binary_path)
        if validator is not None:
            logger.info(f"Found existing binary at {self.local_binary_path}; calculated hash as {validator}")

        headers = get_headers(self.deployment_url, self.settings.header_command)
        result = self._get_downloader().download(
            self.remote_binary_url,
            self.local_binary_path,
            validator=validator,
            headers=headers,
            on_progress=on_progress,
            label=build_version,
        )
        if not isinstance(result, Downloaded):
            return False

        if self.settings.disable_signature_verification:
            logger.info("Signature verification is disabled")
            return True
        self._verify(result, build_version, headers, on_progress)
        return True

    def _download_signature(
        self,
        build_version: str,
        headers: Dict[str, str],
        on_progress: Optional[ProgressCallback],
    ) -> Optional[Downloaded]:
        """Signature from the deployment, else from the releases server if allowed"""
        name = self.settings.signature_name
        local_path = self.local_binary_path.parent / name
        signature = self._fetch_signature(
            with_last_segment(self.remote_binary_url, name), local_path, headers, on_progress
        )
        release = SemanticVersion.try_parse(build_version)
        if signature is None and self.settings.signature_fallback and release is not None:
            logger.info("Trying to download signature file from the releases server")
            version = f"{release.major}.{release.minor}.{release.patch}"
            signature = self._fetch_signature(
                RELEASES_SIGNATURE_URL.format(version=version, name=name), local_path, headers, on_progress
            )
        return signature

    def _fetch_signature(
        self,
        url: str,
        local_path: Path,
        headers: Dict[str, str],
        on_progress: Optional[ProgressCallback],
    ) -> Optional[Downloaded]:
        try:
            return self._get_downloader().download_signature(url, local_path, headers, on_progress)
        except (ResponseError, ConnectionError) as e:
            logger.warning(f"Failed to download signature: {e}")
            return None

    def _verify(
        self,
        binary: Downloaded,
        build_version: str,
        headers: Dict[str, str],
        on_progress: Optional[ProgressCallback],
    ) -> None:
        if self.verifier is None:
            self._accept_unverified(binary, "no trusted signing key is configured")
            return

        signature = self._download_signature(build_version, headers, on_progress)
        if signature is None:
            self._accept_unverified(binary, "no signature was found")
            return

        result = self.verifier.verify(binary.destination, signature.destination)
        if isinstance(result, Valid):
            logger.info(f"Signature of {binary.destination} is valid")
            return

        # A cached binary is never verified again, so a rejected one must go.
        self._discard(binary.destination)
        if isinstance(result, Invalid):
            reason = f" Reason: {result.reason}" if result.reason else ""
            raise UnsignedBinaryError(f"Signature of {binary.destination} is invalid.{reason}")
        if isinstance(result, SignatureNotFound):
            raise UnsignedBinaryError(
                f"Can't verify signature of {binary.destination} because {signature.destination} does not exist"
            )
        raise UnsignedBinaryError(f"Can't verify signature of {binary.destination}: {result.error}")

    def _accept_unverified(self, binary: Downloaded, reason: str) -> None:
        if self.settings.allow_unsigned_binary_without_prompt:
            logger.warning(f"Running unsigned CLI from {binary.source}")
            return
        message = f"Can't verify the integrity of the CLI pulled from {binary.source}: {reason}"
        if self.confirm_unsigned is not None and self.confirm_unsigned(message):
            logger.warning(f"Running unsigned CLI from {binary.source}, accepted by the user")
            return
        self._discard(binary.destination)
        raise UnsignedBinaryError(f"Running unsigned CLI from {binary.source} was denied")

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete CLI file {path}: {e}")

    def version(self) -> SemanticVersion:
        """Return the binary version, raising if it cannot be determined"""
        return read_version(self.local_binary_path, self._env())

    def try_version(self) -> Optional[SemanticVersion]:
        """Like version(), but logs errors instead of raising them"""
        return probe_version(self.local_binary_path, self._env())

    def matches_version(self, raw_build_version: str) -> Optional[bool]:
        """True/False if the binary matches the build version, None if unknown"""
        return matches_version(self.local_binary_path, raw_build_version, self._env())

    def state(self) -> CachedBinaryState:
        return inspect_binary(self.local_binary_path, self._env())

    @property
    def features(self) -> Features:
        return features_for(self.try_version())

    def login(self, token: str) -> str:
        """Store credentials for the deployment in the binary's config directory"""
        logger.info(f"Storing CLI credentials in {self.config_path}")
        return exec_binary(
            self.local_binary_path,
            [
                "login",
                self.deployment_url,
                "--token",
                token,
                "--global-config",
                str(self.config_path),
            ],
            self._env(),
        )

    def config_ssh(self, workspace_agents: Iterable, features: Optional[Features] = None) -> Optional[str]:
        """
        Configure SSH to use this binary.

        An empty workspace_agents removes this deployment's block.

        Returns:
            The written SSH config, or None if no change was needed
        """
        from ..ssh.service import SshConfigService

        service = SshConfigService(
            settings=self.settings,
            deployment_url=self.deployment_url,
            binary_path=self.local_binary_path,
            config_path=self.config_path,
        )
        return service.configure(workspace_agents, features if features is not None else self.features)


def find_binary(settings: Settings, deployment_url: str) -> BinaryManager:
    """
    Pick the binary already on disk without touching the network.

    The primary location wins unless only the fallback location holds a
    binary that reports a version.
    """
    primary = BinaryManager(settings, deployment_url)
    if primary.try_version() is not None or not settings.enable_binary_directory_fallback:
        return primary
    fallback = BinaryManager(settings, deployment_url, force_fallback=True)
    if fallback.try_version() is not None:
        return fallback
    return primary


def ensure_binary(
    settings: Settings,
    deployment_url: str,
    build_version: str,
    on_progress: Optional[ProgressCallback] = None,
    downloader: Optional[Downloader] = None,
    verifier: Optional[SignatureVerifier] = None,
    confirm_unsigned: Optional[ConfirmCallback] = None,
) -> BinaryManager:
    """
    Do as much as possible to get a valid, up-to-date binary.

    1. Use the primary location if its binary already reports the build
       version. This skips the network entirely, which is faster than a 304
       and works with binary sources that do not support ETags.
    2. Otherwise download to the primary location when downloads are enabled.
    3. If the primary location is not writable and fallback is enabled, repeat
       with the data directory.
    4. With downloads disabled, prefer whichever location has a binary that
       runs, the primary one when both or neither do.

    Raises:
        AccessDeniedError: If the primary location is not writable and there
            is nowhere to fall back to
        ResponseError, ConnectionError: If a download fails
        UnsignedBinaryError: If a downloaded binary is refused
    """
    extras = {"downloader": downloader, "verifier": verifier, "confirm_unsigned": confirm_unsigned}
    notify = on_progress or (lambda _message: None)
    primary = BinaryManager(settings, deployment_url, **extras)

    primary_matches = primary.matches_version(build_version)
    if primary_matches is True:
        logger.info(f"Local CLI version matches server version: {build_version}")
        return primary

    if settings.enable_downloads:
        logger.info(DOWNLOADING_MESSAGE)
        notify(DOWNLOADING_MESSAGE)
        try:
            primary.download(build_version, on_progress)
            return primary
        except AccessDeniedError:
            if primary_is_data_dir(settings, deployment_url) or not settings.enable_binary_directory_fallback:
                raise
            logger.warning(
                f"Cannot write to {primary.local_binary_path}; falling back to the data directory"
            )

    fallback = BinaryManager(settings, deployment_url, force_fallback=True, **extras)
    fallback_matches = fallback.matches_version(build_version)
    if fallback_matches is True:
        return fallback

    if settings.enable_downloads:
        logger.info(DOWNLOADING_MESSAGE)
        notify(DOWNLOADING_MESSAGE)
        fallback.download(build_version, on_progress)
        return fallback

    # Prefer the primary location unless only the fallback has a binary
    # that reports a version.
    if primary_matches is None and fallback_matches is not None:
        return fallback
    return primary
