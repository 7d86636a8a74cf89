"""Core primitives for cloudinfo."""

from .errors import (
    MetadataError,
    MetadataParseError,
    MetadataRequestError,
    MetadataStatusError,
    MetadataTimeoutError,
    TokenAcquisitionError,
    UnsupportedProviderError,
)
from .http import CachedResponse, MetadataHttpClient, RequestKey
from .models import (
    DMI,
    CloudInfo,
    IPList,
    Location,
    LocationList,
    make_location,
    normalize_address,
)

__all__ = [
    "CachedResponse",
    "CloudInfo",
    "DMI",
    "IPList",
    "Location",
    "LocationList",
    "MetadataError",
    "MetadataHttpClient",
    "MetadataParseError",
    "MetadataRequestError",
    "MetadataStatusError",
    "MetadataTimeoutError",
    "RequestKey",
    "TokenAcquisitionError",
    "UnsupportedProviderError",
    "make_location",
    "normalize_address",
]
