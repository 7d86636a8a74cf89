"""Metadata resolution with a time-bounded cache.

The :class:`MetadataResolver` runs a resolution cycle (DMI classification,
local baseline, provider fetch, finishing step) and memoizes its outcome.
Successful resolutions are kept for ``success_ttl_seconds`` and failures
for the shorter ``failure_ttl_seconds`` so an unreachable metadata service
is not hammered.

Usage:
    resolver = MetadataResolver(config.metadata, dmi_path=config.dmi.path)
    resolution = await resolver.load()
    if not resolution.ok:
        LOGGER.warning("partial metadata: %s", resolution.error)
    print(resolution.info.location)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

import aiohttp

from .config import MetadataConfig
from .core.errors import MetadataError, UnsupportedProviderError
from .core.http import MetadataHttpClient
from .core.models import DMI, CloudInfo, IPList
from .dmi import read_dmi
from .providers import AwsProvider, BaseProvider, GcpProvider, ProviderKind
from .system import get_arch, get_hostname, scan_addresses

LOGGER = logging.getLogger(__name__)

DmiReader = Callable[[], DMI]
AddressScanner = Callable[[], Tuple[IPList, IPList]]


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of a resolution cycle.

    ``info`` is always usable, even when ``error`` is set.
    """

    info: CloudInfo
    error: Optional[MetadataError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    resolution: Resolution
    expires_at: float


class MetadataResolver:
    """Resolves and caches the metadata record of the current host."""

    def __init__(
        self,
        config: Optional[MetadataConfig] = None,
        *,
        dmi_path: Optional[Path] = None,
        dmi_reader: Optional[DmiReader] = None,
        address_scanner: AddressScanner = scan_addresses,
        clock: Callable[[], float] = time.monotonic,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._config = config or MetadataConfig()
        self._dmi_reader = dmi_reader or (lambda: read_dmi(dmi_path))
        self._address_scanner = address_scanner
        self._clock = clock
        self._session = session

        self._entry: Optional[_CacheEntry] = None
        self._lock = asyncio.Lock()
        self._resolve_count = 0

    @property
    def resolve_count(self) -> int:
        """Number of cycles run by :meth:`load` (cache misses)."""
        return self._resolve_count

    @property
    def expires_at(self) -> Optional[float]:
        return self._entry.expires_at if self._entry is not None else None

    def invalidate(self) -> None:
        self._entry = None

    async def load(self) -> Resolution:
        """Return the cached resolution, re-resolving once it has expired.

        Concurrent callers during a refresh wait on the lock and then get the
        new entry; a refresh never runs twice at the same time.
        """
        cached = self._fresh_entry()
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._fresh_entry()
            if cached is not None:
                return cached

            resolution = await self.resolve()
            self._resolve_count += 1

            if resolution.ok:
                ttl = self._config.success_ttl_seconds
            else:
                ttl = self._config.failure_ttl_seconds
            self._entry = _CacheEntry(
                resolution=resolution, expires_at=self._clock() + ttl
            )
            LOGGER.debug(
                "Cached %s resolution for %.0fs",
                "successful" if resolution.ok else "failed",
                ttl,
            )
            return resolution

    def _fresh_entry(self) -> Optional[Resolution]:
        entry = self._entry
        if entry is None or self._clock() >= entry.expires_at:
            return None
        return entry.resolution

    async def resolve(self) -> Resolution:
        """Run one uncached resolution cycle."""
        # blocking sysfs and interface reads run in worker threads
        dmi = await asyncio.to_thread(self._dmi_reader)
        kind = ProviderKind.from_code(dmi.cloud)
        info = await self._baseline(dmi, kind)
        error: Optional[MetadataError] = None

        if kind in (ProviderKind.AWS, ProviderKind.GCP):
            async with MetadataHttpClient(
                session=self._session,
                timeout=self._config.request_timeout_seconds,
                max_body_bytes=self._config.max_body_bytes,
            ) as http:
                fetcher = self._build_fetcher(kind, http, info)
                try:
                    await fetcher.fetch()
                except MetadataError as exc:
                    LOGGER.warning("%s metadata fetch failed: %s", kind.value, exc)
                    error = exc
                LOGGER.debug(
                    "%s resolution used %d request(s)", kind.value, http.request_count
                )
        elif kind is ProviderKind.SCALEWAY:
            info.type = dmi.product_name
            error = UnsupportedProviderError(
                kind.value, "scaleway has no API for full machine information"
            )
        else:
            error = UnsupportedProviderError(dmi.cloud or kind.value)

        _fix(info, dmi)
        info.freeze()

        if error is None:
            LOGGER.info(
                "Resolved %s instance %s (%s)", info.provider, info.id, info.location
            )
        return Resolution(info=info, error=error)

    async def _baseline(self, dmi: DMI, kind: ProviderKind) -> CloudInfo:
        public, private = await asyncio.to_thread(self._address_scanner)
        return CloudInfo(
            provider=kind.value,
            architecture=get_arch(),
            hostname=get_hostname(),
            public_ip=public,
            private_ip=private,
            dmi=dmi,
        )

    def _build_fetcher(
        self, kind: ProviderKind, http: MetadataHttpClient, info: CloudInfo
    ) -> BaseProvider:
        if kind is ProviderKind.AWS:
            return AwsProvider(
                http,
                info,
                base_url=self._config.aws_base_url,
                token_ttl_seconds=self._config.aws_token_ttl_seconds,
            )
        if kind is ProviderKind.GCP:
            return GcpProvider(http, info, url=self._config.gcp_url)
        raise ValueError(f"no fetcher for provider {kind.value}")


def _fix(info: CloudInfo, dmi: DMI) -> None:
    """Derive the short name and fall back to the DMI uuid for the id."""
    if info.hostname and not info.shortname:
        info.shortname = info.hostname.split(".", 1)[0]
    if not info.id and dmi.product_uuid:
        info.id = dmi.product_uuid
