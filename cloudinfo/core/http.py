"""Deduplicating HTTP client for metadata services.

A :class:`MetadataHttpClient` performs every distinct ``(method, url)``
request at most once. Concurrent callers asking for the same request share a
single in-flight task and all observe the same :class:`CachedResponse`,
errors included. Headers are not part of the request identity: the first
caller's headers are the ones sent.

A client is meant to live for one resolution cycle and then be closed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import aiohttp

from ..constants import DEFAULT_MAX_BODY_BYTES, DEFAULT_REQUEST_TIMEOUT_SECONDS
from .errors import (
    MetadataError,
    MetadataRequestError,
    MetadataStatusError,
    MetadataTimeoutError,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestKey:
    method: str
    url: str


@dataclass(slots=True)
class CachedResponse:
    """Outcome of a single executed request."""

    key: RequestKey
    body: bytes = b""
    status: Optional[int] = None
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[MetadataError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class MetadataHttpClient:
    """HTTP client that runs each distinct request exactly once."""

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._max_body_bytes = max_body_bytes
        self._requests: Dict[RequestKey, asyncio.Task[CachedResponse]] = {}
        self._lock = asyncio.Lock()
        self._request_count = 0

    async def __aenter__(self) -> "MetadataHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def request_count(self) -> int:
        """Number of requests actually sent over the network."""
        return self._request_count

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Cancel unfinished requests and close the session if we own it."""
        pending = [task for task in self._requests.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._requests.clear()

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> CachedResponse:
        """Return the shared outcome for ``method url``, executing it if needed.

        Never raises for transport or status failures; those are stored on
        the returned response's ``error``.
        """
        key = RequestKey(method=method.upper(), url=url)

        async with self._lock:
            task = self._requests.get(key)
            if task is None:
                task = asyncio.ensure_future(self._execute(key, dict(headers or {})))
                self._requests[key] = task
            else:
                LOGGER.debug("Reusing request %s %s", key.method, key.url)

        # Shield so one caller going away does not cancel the shared request.
        return await asyncio.shield(task)

    async def get(
        self, url: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> bytes:
        """GET ``url`` and return the body, raising the stored error if any."""
        response = await self.request("GET", url, headers=headers)
        response.raise_for_error()
        return response.body

    async def put(
        self, url: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> bytes:
        """PUT ``url`` with an empty body and return the response body."""
        response = await self.request("PUT", url, headers=headers)
        response.raise_for_error()
        return response.body

    async def _execute(
        self, key: RequestKey, headers: Dict[str, str]
    ) -> CachedResponse:
        result = CachedResponse(key=key)
        session = await self._ensure_session()
        self._request_count += 1

        LOGGER.debug("%s %s", key.method, key.url)

        try:
            async with asyncio.timeout(self._timeout):
                async with session.request(
                    key.method, key.url, headers=headers
                ) as response:
                    result.status = response.status
                    result.reason = response.reason or ""
                    result.headers = dict(response.headers)
                    result.body = await self._read_body(response)
        except asyncio.TimeoutError:
            result.error = MetadataTimeoutError(
                f"{key.method} {key.url} timed out after {self._timeout}s",
                method=key.method,
                url=key.url,
            )
        except aiohttp.ClientError as exc:
            result.error = MetadataRequestError(
                f"{key.method} {key.url} failed: {exc}",
                method=key.method,
                url=key.url,
            )
            result.error.__cause__ = exc
        else:
            if not 200 <= (result.status or 0) < 300:
                result.error = MetadataStatusError(
                    f"HTTP Status: {result.status} {result.reason}".rstrip(),
                    method=key.method,
                    url=key.url,
                    status=result.status or 0,
                    body=result.body,
                )

        if result.error is not None:
            LOGGER.debug("Request %s %s failed: %s", key.method, key.url, result.error)
        return result

    async def _read_body(self, response: aiohttp.ClientResponse) -> bytes:
        chunks = []
        remaining = self._max_body_bytes
        while remaining > 0:
            chunk = await response.content.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)
