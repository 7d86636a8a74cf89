"""AWS EC2 instance metadata (IMDSv2) fetcher.

The flow is a small state machine:

``NO_TOKEN``
    PUT ``/api/token`` to obtain a session token.
``TOKEN_ACQUIRED``
    GET the instance identity document, then fill the fields it leaves blank
    from the individual ``/meta-data/`` paths.
``IDENTITY_FETCHED``
    The record has been populated.

Only the token and the identity document are mandatory. Fallback lookups
are best effort and never overwrite a value that is already known.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ..constants import (
    AWS_TOKEN_HEADER,
    AWS_TOKEN_TTL_HEADER,
    DEFAULT_AWS_BASE_URL,
    DEFAULT_AWS_TOKEN_TTL_SECONDS,
)
from ..core.errors import MetadataError, MetadataParseError, TokenAcquisitionError
from ..core.http import MetadataHttpClient
from ..core.models import CloudInfo, make_location
from .base import BaseProvider, ProviderKind, add_address

LOGGER = logging.getLogger(__name__)

# identity field -> meta-data path used when the identity document leaves it blank
FALLBACK_PATHS = {
    "hostname": "hostname",
    "instance_type": "instance-type",
    "availability_zone": "placement/availability-zone",
    "region": "placement/region",
    "public_ip": "public-ipv4",
    "private_ip": "local-ipv4",
}


class AwsFetchState(str, Enum):
    NO_TOKEN = "no_token"
    TOKEN_ACQUIRED = "token_acquired"
    IDENTITY_FETCHED = "identity_fetched"


@dataclass(slots=True)
class AwsIdentity:
    """Fields of the instance identity document we care about."""

    account_id: str = ""  # 12 digits
    architecture: str = ""  # x86_64
    availability_zone: str = ""  # ap-northeast-1c
    image_id: str = ""  # ami-xxx
    instance_id: str = ""  # i-xxx
    instance_type: str = ""  # m5a.large
    private_ip: str = ""
    region: str = ""  # ap-northeast-1
    version: str = ""  # 2017-09-30
    # not part of the document, only filled from meta-data
    hostname: str = ""
    public_ip: str = ""

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "AwsIdentity":
        def text(key: str) -> str:
            value = data.get(key)
            return str(value).strip() if value is not None else ""

        return cls(
            account_id=text("accountId"),
            architecture=text("architecture"),
            availability_zone=text("availabilityZone"),
            image_id=text("imageId"),
            instance_id=text("instanceId"),
            instance_type=text("instanceType"),
            private_ip=text("privateIp"),
            region=text("region"),
            version=text("version"),
        )


class AwsProvider(BaseProvider):
    """Populates a :class:`CloudInfo` from the EC2 metadata service."""

    kind = ProviderKind.AWS

    def __init__(
        self,
        http: MetadataHttpClient,
        info: CloudInfo,
        *,
        base_url: str = DEFAULT_AWS_BASE_URL,
        token_ttl_seconds: int = DEFAULT_AWS_TOKEN_TTL_SECONDS,
    ) -> None:
        super().__init__(http, info)
        self._base_url = base_url.rstrip("/")
        self._token_ttl_seconds = token_ttl_seconds
        self.token: Optional[str] = None
        self.identity: Optional[AwsIdentity] = None
        self.state = AwsFetchState.NO_TOKEN

    async def fetch(self) -> CloudInfo:
        await self.get_token()
        identity = await self.get_identity()
        await self.fill_missing(identity)
        self._apply(identity)
        self.state = AwsFetchState.IDENTITY_FETCHED
        return self.info

    async def get_token(self) -> str:
        """Acquire the session token, once per fetcher."""
        if self.token:
            return self.token

        body = await self._http.put(
            f"{self._base_url}/api/token",
            headers={AWS_TOKEN_TTL_HEADER: str(self._token_ttl_seconds)},
        )
        token = body.decode("utf-8", errors="replace").strip()
        if not token:
            raise TokenAcquisitionError("could not acquire aws metadata token")

        self.token = token
        self.state = AwsFetchState.TOKEN_ACQUIRED
        return token

    async def get_identity(self) -> AwsIdentity:
        body = await self._http.get(
            f"{self._base_url}/dynamic/instance-identity/document",
            headers=self._auth_headers(),
        )
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise MetadataParseError(
                f"invalid aws identity document: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise MetadataParseError("aws identity document is not an object")

        self.identity = AwsIdentity.from_document(data)
        return self.identity

    async def get_meta(self, path: str) -> str:
        body = await self._http.get(
            f"{self._base_url}/meta-data/{path}", headers=self._auth_headers()
        )
        return body.decode("utf-8", errors="replace").strip()

    async def fill_missing(self, identity: AwsIdentity) -> None:
        """Fill blank identity fields from their meta-data paths.

        Lookups run concurrently; a failed lookup leaves its field empty.
        """
        missing = [name for name in FALLBACK_PATHS if not getattr(identity, name)]
        if not missing:
            return

        values = await asyncio.gather(
            *(self._get_meta_optional(FALLBACK_PATHS[name]) for name in missing)
        )
        for name, value in zip(missing, values):
            if value and not getattr(identity, name):
                setattr(identity, name, value)

    async def _get_meta_optional(self, path: str) -> str:
        try:
            return await self.get_meta(path)
        except MetadataError as exc:
            LOGGER.debug("aws meta-data %s unavailable: %s", path, exc)
            return ""

    def _auth_headers(self) -> dict[str, str]:
        return {AWS_TOKEN_HEADER: self.token or ""}

    def _apply(self, identity: AwsIdentity) -> None:
        info = self.info
        if identity.architecture:
            info.architecture = identity.architecture
        if identity.image_id:
            info.image = identity.image_id
        if identity.instance_id:
            info.id = identity.instance_id
        if identity.instance_type:
            info.type = identity.instance_type
        if identity.account_id:
            info.account_id = identity.account_id
        if identity.hostname:
            info.hostname = identity.hostname

        add_address(info.private_ip, identity.private_ip)
        add_address(info.public_ip, identity.public_ip)

        info.location = make_location(
            "cloud",
            self.kind.value,
            "region",
            identity.region,
            "zone",
            identity.availability_zone,
        )
