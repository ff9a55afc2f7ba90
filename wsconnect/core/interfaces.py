"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.binary.models import Downloaded, DownloadResult, VerificationResult


ProgressCallback = Callable[[str], None]
# Asked whether a binary that could not be verified may run anyway
ConfirmCallback = Callable[[str], bool]


class Downloader(ABC):
    """Conditional binary fetch interface"""

    @abstractmethod
    def download(
        self,
        url: str,
        local_path: Path,
        validator: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        label: Optional[str] = None,
    ) -> "DownloadResult":
        """Fetch url into local_path unless validator still matches"""
        pass

    @abstractmethod
    def download_signature(
        self,
        url: str,
        local_path: Path,
        headers: Optional[Mapping[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional["Downloaded"]:
        """Fetch a detached signature, None when the server has none"""
        pass


class SignatureVerifier(ABC):
    """Detached signature check for a downloaded binary"""

    @abstractmethod
    def verify(self, binary: Path, signature: Path) -> "VerificationResult":
        pass
