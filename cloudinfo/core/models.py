"""Value types shared by the resolver and the provider fetchers."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def normalize_address(value: Union[str, IPAddress]) -> IPAddress:
    """Return the canonical form of an address.

    IPv4-mapped IPv6 addresses collapse to plain IPv4 and IPv6 zone
    identifiers (``fe80::1%eth0``) are dropped.

    Raises:
        ValueError: If ``value`` is not a valid address.
    """
    if isinstance(value, str):
        text = value.strip().split("%", 1)[0]
        addr: IPAddress = ipaddress.ip_address(text)
    else:
        addr = value

    if isinstance(addr, ipaddress.IPv6Address):
        if addr.ipv4_mapped is not None:
            return addr.ipv4_mapped
        if addr.scope_id:
            return ipaddress.IPv6Address(int(addr))
    return addr


class IPList:
    """Ordered set of network addresses.

    Insertion order is kept; an address already present (after
    normalization) is not added twice.
    """

    __slots__ = ("_addrs", "_frozen")

    def __init__(self, addrs: Iterable[Union[str, IPAddress]] = ()) -> None:
        self._addrs: List[IPAddress] = []
        self._frozen = False
        for addr in addrs:
            self.add(addr)

    def add(self, addr: Union[str, IPAddress]) -> bool:
        """Add ``addr`` and return True when it was not already present."""
        if self._frozen:
            raise TypeError("IPList is frozen")
        normalized = normalize_address(addr)
        if normalized in self._addrs:
            return False
        self._addrs.append(normalized)
        return True

    def add_string(self, text: str) -> bool:
        return self.add(text)

    def first_v4(self) -> Optional[ipaddress.IPv4Address]:
        for addr in self._addrs:
            if addr.version == 4:
                return addr  # type: ignore[return-value]
        return None

    def first_v6(self) -> Optional[ipaddress.IPv6Address]:
        for addr in self._addrs:
            if addr.version == 6:
                return addr  # type: ignore[return-value]
        return None

    def v4(self) -> "IPList":
        return IPList(addr for addr in self._addrs if addr.version == 4)

    def v6(self) -> "IPList":
        return IPList(addr for addr in self._addrs if addr.version == 6)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_strings(self) -> List[str]:
        return [str(addr) for addr in self._addrs]

    def __iter__(self) -> Iterator[IPAddress]:
        return iter(list(self._addrs))

    def __len__(self) -> int:
        return len(self._addrs)

    def __bool__(self) -> bool:
        return bool(self._addrs)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, (str, ipaddress.IPv4Address, ipaddress.IPv6Address)):
            try:
                return normalize_address(item) in self._addrs
            except ValueError:
                return False
        return False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IPList):
            return self._addrs == other._addrs
        return NotImplemented

    def __repr__(self) -> str:
        return f"IPList({self.as_strings()!r})"


@dataclass(frozen=True, slots=True)
class Location:
    type: str  # cloud, region, zone
    value: str

    def __str__(self) -> str:
        return f"{self.type}={self.value}"

    def as_dict(self) -> Dict[str, str]:
        return {"type": self.type, "value": self.value}


class LocationList(tuple):
    """Coarse-to-fine sequence of :class:`Location` entries."""

    def __new__(cls, entries: Iterable[Location] = ()) -> "LocationList":
        return super().__new__(cls, tuple(entries))

    def __str__(self) -> str:
        return ",".join(str(entry) for entry in self)

    def get(self, kind: str) -> str:
        for entry in self:
            if entry.type == kind:
                return entry.value
        return ""


def make_location(*pairs: str) -> LocationList:
    """Build a LocationList from flat ``type, value`` pairs.

    >>> str(make_location("cloud", "aws", "region", "us-east-1"))
    'cloud=aws,region=us-east-1'
    """
    if len(pairs) % 2:
        raise ValueError("make_location expects type/value pairs")
    return LocationList(
        Location(type=pairs[i], value=pairs[i + 1]) for i in range(0, len(pairs), 2)
    )


@dataclass(frozen=True, slots=True)
class DMI:
    """Hardware descriptor read from the firmware tables."""

    cloud: str = "unknown"
    sys_vendor: str = ""
    product_name: str = ""
    product_version: str = ""
    product_uuid: str = ""
    board_asset_tag: str = ""  # uuid on google, instance id on aws
    chassis_asset_tag: str = ""

    def as_dict(self) -> Dict[str, str]:
        payload = {
            "cloud": self.cloud,
            "sys_vendor": self.sys_vendor,
            "product_name": self.product_name,
            "product_version": self.product_version,
            "product_uuid": self.product_uuid,
            "board_asset_tag": self.board_asset_tag,
            "chassis_asset_tag": self.chassis_asset_tag,
        }
        return {key: value for key, value in payload.items() if value}


@dataclass(slots=True)
class CloudInfo:
    """Metadata record for the current host.

    Built once per resolution cycle; :meth:`freeze` turns it read-only
    before it is handed to callers.
    """

    provider: str
    account_id: str = ""
    architecture: str = ""
    public_ip: IPList = field(default_factory=IPList)
    private_ip: IPList = field(default_factory=IPList)
    hostname: str = ""
    shortname: str = ""
    image: str = ""
    id: str = ""
    type: str = ""
    location: LocationList = field(default_factory=LocationList)
    dmi: Optional[DMI] = None
    _frozen: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"cannot assign to {name!r}: CloudInfo is frozen")
        object.__setattr__(self, name, value)

    def freeze(self) -> "CloudInfo":
        self.public_ip.freeze()
        self.private_ip.freeze()
        object.__setattr__(self, "_frozen", True)
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_dict(self) -> Dict[str, Any]:
        """Serializable view with empty fields omitted."""
        payload: Dict[str, Any] = {"provider": self.provider}
        scalars = (
            ("account_id", self.account_id),
            ("architecture", self.architecture),
        )
        payload.update((key, value) for key, value in scalars if value)
        if self.public_ip:
            payload["public_ip"] = self.public_ip.as_strings()
        if self.private_ip:
            payload["private_ip"] = self.private_ip.as_strings()
        scalars = (
            ("hostname", self.hostname),
            ("shortname", self.shortname),
            ("image", self.image),
            ("id", self.id),
            ("type", self.type),
        )
        payload.update((key, value) for key, value in scalars if value)
        if self.location:
            payload["location"] = [entry.as_dict() for entry in self.location]
        if self.dmi is not None:
            payload["dmi"] = self.dmi.as_dict()
        return payload
