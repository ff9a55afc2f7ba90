"""
Primary and fallback locations of a deployment's binary
"""
from ...core.settings import Settings
from .models import BinaryDescriptor


def resolve(settings: Settings, deployment_url: str, force_fallback: bool = False) -> BinaryDescriptor:
    """
    Compute where the binary for deployment_url lives.

    The primary location is the configured binary directory, or the data
    directory when none is configured. The fallback location is always the
    data directory. Both are qualified by the deployment host (and port) so
    deployments never share a binary.
    """
    return BinaryDescriptor(
        remote_source_url=settings.bin_source(deployment_url),
        local_path=settings.bin_path(deployment_url, force_fallback),
        is_fallback=force_fallback,
    )


def primary_is_data_dir(settings: Settings, deployment_url: str) -> bool:
    """True when the primary location already is the data directory"""
    return settings.bin_path(deployment_url).parent == settings.data_dir(deployment_url)
