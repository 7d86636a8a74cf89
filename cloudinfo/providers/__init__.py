"""Provider-specific metadata fetchers.

- AwsProvider: IMDSv2 token flow with per-field fallbacks
- GcpProvider: single recursive metadata request
"""

from .aws import AwsFetchState, AwsIdentity, AwsProvider
from .base import BaseProvider, ProviderKind, add_address
from .gcp import GcpMetadata, GcpProvider, project_from_zone, region_from_zone

__all__ = [
    "AwsFetchState",
    "AwsIdentity",
    "AwsProvider",
    "BaseProvider",
    "GcpMetadata",
    "GcpProvider",
    "ProviderKind",
    "add_address",
    "project_from_zone",
    "region_from_zone",
]
