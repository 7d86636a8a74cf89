"""Google Compute Engine metadata fetcher.

A single recursive request returns the whole instance document; there is no
fallback if it fails.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from ..constants import DEFAULT_GCP_URL, GCP_FLAVOR_HEADERS
from ..core.errors import MetadataParseError
from ..core.http import MetadataHttpClient
from ..core.models import CloudInfo, make_location
from .base import BaseProvider, ProviderKind, add_address

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class GcpNetworkInterface:
    ip: str = ""  # private address
    external_ips: List[str] = field(default_factory=list)  # from accessConfigs


@dataclass(slots=True)
class GcpMetadata:
    hostname: str = ""  # instance-name.asia-northeast1-b.c.project-name.internal
    id: str = ""
    image: str = ""  # projects/debian-cloud/global/images/debian-12-bookworm-v20240515
    machine_type: str = ""  # projects/<id>/machineTypes/e2-standard-4
    name: str = ""
    zone: str = ""  # projects/<id>/zones/asia-northeast1-b
    network_interfaces: List[GcpNetworkInterface] = field(default_factory=list)

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "GcpMetadata":
        interfaces: List[GcpNetworkInterface] = []
        for raw in _list_field(data, "networkInterfaces"):
            if not isinstance(raw, dict):
                continue
            external_ips = [
                str(config.get("externalIp") or "")
                for config in _list_field(raw, "accessConfigs")
                if isinstance(config, dict)
            ]
            interfaces.append(
                GcpNetworkInterface(
                    ip=str(raw.get("ip") or ""),
                    external_ips=[ip for ip in external_ips if ip],
                )
            )

        return cls(
            hostname=str(data.get("hostname") or ""),
            id=_render_id(data.get("id")),
            image=str(data.get("image") or ""),
            machine_type=str(data.get("machineType") or ""),
            name=str(data.get("name") or ""),
            zone=str(data.get("zone") or ""),
            network_interfaces=interfaces,
        )


def _list_field(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MetadataParseError(
            f"gcp metadata field {key} is {type(value).__name__}, expected a list"
        )
    return value


def _render_id(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _base(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def project_from_zone(zone: str) -> str:
    """Extract the project number from ``projects/<id>/zones/<zone>``."""
    parts = zone.split("/")
    if len(parts) >= 2 and parts[0] == "projects":
        return parts[1]
    return ""


def region_from_zone(zone: str) -> str:
    """Strip the trailing ``-<suffix>`` from a zone name."""
    pos = zone.rfind("-")
    if pos > 0:
        return zone[:pos]
    return zone


class GcpProvider(BaseProvider):
    """Populates a :class:`CloudInfo` from the GCE metadata server."""

    kind = ProviderKind.GCP

    def __init__(
        self,
        http: MetadataHttpClient,
        info: CloudInfo,
        *,
        url: str = DEFAULT_GCP_URL,
    ) -> None:
        super().__init__(http, info)
        self._url = url

    async def fetch(self) -> CloudInfo:
        body = await self._http.get(self._url, headers=GCP_FLAVOR_HEADERS)
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise MetadataParseError(f"invalid gcp metadata document: {exc}") from exc
        if not isinstance(data, dict):
            raise MetadataParseError("gcp metadata document is not an object")

        metadata = GcpMetadata.from_document(data)
        info = self.info

        if metadata.hostname:
            info.hostname = metadata.hostname
        info.id = metadata.id
        info.image = metadata.image
        info.type = _base(metadata.machine_type)
        account_id = project_from_zone(metadata.zone)
        if account_id:
            info.account_id = account_id

        for interface in metadata.network_interfaces:
            add_address(info.private_ip, interface.ip)
            for external_ip in interface.external_ips:
                add_address(info.public_ip, external_ip)

        zone = _base(metadata.zone)
        info.location = make_location(
            "cloud", self.kind.value, "region", region_from_zone(zone), "zone", zone
        )

        LOGGER.debug("gcp metadata fetched for %s", metadata.name or info.hostname)
        return info
