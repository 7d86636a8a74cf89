"""Identify the cloud provider of the current host and describe the instance.

Key components:
- MetadataResolver: DMI detection, provider fetch and a TTL cache
- MetadataHttpClient: runs each distinct metadata request exactly once
- AwsProvider / GcpProvider: provider-specific fetchers
- CloudInfo: the resulting metadata record

Usage:
    resolver = MetadataResolver()
    resolution = await resolver.load()
    print(resolution.info.as_dict())
"""

from .core import (
    DMI,
    CachedResponse,
    CloudInfo,
    IPList,
    Location,
    LocationList,
    MetadataError,
    MetadataHttpClient,
    MetadataParseError,
    MetadataRequestError,
    MetadataStatusError,
    MetadataTimeoutError,
    TokenAcquisitionError,
    UnsupportedProviderError,
    make_location,
)
from .dmi import detect_provider, read_dmi
from .providers import AwsProvider, GcpProvider, ProviderKind
from .resolver import MetadataResolver, Resolution
from .version import __version__

__all__ = [
    "AwsProvider",
    "CachedResponse",
    "CloudInfo",
    "DMI",
    "GcpProvider",
    "IPList",
    "Location",
    "LocationList",
    "MetadataError",
    "MetadataHttpClient",
    "MetadataParseError",
    "MetadataRequestError",
    "MetadataResolver",
    "MetadataStatusError",
    "MetadataTimeoutError",
    "ProviderKind",
    "Resolution",
    "TokenAcquisitionError",
    "UnsupportedProviderError",
    "__version__",
    "detect_provider",
    "make_location",
    "read_dmi",
]
