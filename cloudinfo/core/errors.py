"""Error types raised while resolving cloud metadata."""

from __future__ import annotations

from typing import Optional


class MetadataError(RuntimeError):
    """Base class for every failure surfaced by a resolution cycle."""


class MetadataRequestError(MetadataError):
    """Raised when a metadata request could not be completed."""

    def __init__(self, message: str, *, method: str = "", url: str = "") -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class MetadataTimeoutError(MetadataRequestError):
    """Raised when a metadata request exceeds its deadline."""


class MetadataStatusError(MetadataRequestError):
    """Raised when a metadata endpoint answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        url: str = "",
        status: int = 0,
        body: bytes = b"",
    ) -> None:
        super().__init__(message, method=method, url=url)
        self.status = status
        self.body = body


class MetadataParseError(MetadataError):
    """Raised when a metadata document cannot be decoded."""


class TokenAcquisitionError(MetadataError):
    """Raised when the AWS metadata service hands out an empty token."""


class UnsupportedProviderError(MetadataError):
    """Returned when the host provider has no supported metadata API."""

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"unsupported cloud provider {provider}")
        self.provider = provider
