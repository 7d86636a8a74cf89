"""Provider classification and the fetcher interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum

from ..core.http import MetadataHttpClient
from ..core.models import CloudInfo, IPList

LOGGER = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Cloud providers recognised from the hardware descriptor."""

    AWS = "aws"
    GCP = "gcp"
    SCALEWAY = "scaleway"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: str) -> "ProviderKind":
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class BaseProvider(ABC):
    """Fetches one provider's metadata into a :class:`CloudInfo`.

    A fetcher instance belongs to a single resolution cycle and issues all of
    its requests through that cycle's :class:`MetadataHttpClient`.
    """

    kind: ProviderKind

    def __init__(self, http: MetadataHttpClient, info: CloudInfo) -> None:
        self._http = http
        self.info = info

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def fetch(self) -> CloudInfo:
        """Populate ``self.info`` from the metadata service.

        Raises:
            MetadataError: If a mandatory step fails. ``self.info`` keeps
                whatever was written before the failure.
        """
        ...


def add_address(target: IPList, value: str) -> bool:
    """Add a textual address to ``target``, skipping blanks and garbage."""
    if not value:
        return False
    try:
        return target.add_string(value)
    except ValueError:
        LOGGER.debug("Ignoring unparseable address %r", value)
        return False
