"""Tests for the AWS token-flow metadata fetcher."""

from collections import Counter
from typing import Any, Dict, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from cloudinfo.core.errors import (
    MetadataParseError,
    MetadataStatusError,
    TokenAcquisitionError,
)
from cloudinfo.core.http import MetadataHttpClient
from cloudinfo.core.models import CloudInfo, IPList
from cloudinfo.providers.aws import AwsFetchState, AwsIdentity, AwsProvider

TOKEN = "AQAEAtest-token=="

IDENTITY = {
    "accountId": "123456789012",
    "architecture": "x86_64",
    "availabilityZone": "ap-northeast-1c",
    "billingProducts": None,
    "imageId": "ami-0123456789abcdef0",
    "instanceId": "i-0123456789abcdef0",
    "instanceType": "m5a.large",
    "pendingTime": "2021-10-17T13:39:07Z",
    "privateIp": "172.31.10.5",
    "region": "ap-northeast-1",
    "version": "2017-09-30",
}


def make_imds_app(
    identity: Optional[Dict[str, Any]] = None,
    meta: Optional[Dict[str, str]] = None,
    *,
    token: str = TOKEN,
    identity_status: int = 200,
    identity_body: Optional[str] = None,
) -> tuple[web.Application, Counter]:
    """Build a fake instance metadata service counting every request."""
    calls: Counter = Counter()
    meta = meta or {}

    async def handle_token(request: web.Request) -> web.StreamResponse:
        calls["token"] += 1
        assert request.headers["X-aws-ec2-metadata-token-ttl-seconds"] == "60"
        return web.Response(text=token)

    def authorized(request: web.Request) -> bool:
        return request.headers.get("X-aws-ec2-metadata-token") == token.strip()

    async def handle_identity(request: web.Request) -> web.StreamResponse:
        calls["identity"] += 1
        if not authorized(request):
            return web.Response(status=401)
        if identity_body is not None:
            return web.Response(status=identity_status, text=identity_body)
        return web.json_response(identity or {}, status=identity_status)

    async def handle_meta(request: web.Request) -> web.StreamResponse:
        path = request.match_info["path"]
        calls[f"meta:{path}"] += 1
        if not authorized(request):
            return web.Response(status=401)
        if path not in meta:
            return web.Response(status=404, text="Not Found")
        return web.Response(text=meta[path])

    app = web.Application()
    app.router.add_put("/latest/api/token", handle_token)
    app.router.add_get("/latest/dynamic/instance-identity/document", handle_identity)
    app.router.add_get("/latest/meta-data/{path:.+}", handle_meta)
    return app, calls


def base_url(server: TestServer) -> str:
    return str(server.make_url("/latest"))


@pytest.mark.asyncio
async def test_fetch_populates_record():
    app, calls = make_imds_app(
        IDENTITY,
        {
            "hostname": "ip-172-31-10-5.ap-northeast-1.compute.internal",
            "public-ipv4": "54.250.1.2",
        },
    )

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            info = await provider.fetch()

    assert provider.state is AwsFetchState.IDENTITY_FETCHED
    assert info.account_id == "123456789012"
    assert info.architecture == "x86_64"
    assert info.image == "ami-0123456789abcdef0"
    assert info.id == "i-0123456789abcdef0"
    assert info.type == "m5a.large"
    assert info.hostname == "ip-172-31-10-5.ap-northeast-1.compute.internal"
    assert info.private_ip.as_strings() == ["172.31.10.5"]
    assert info.public_ip.as_strings() == ["54.250.1.2"]
    assert str(info.location) == "cloud=aws,region=ap-northeast-1,zone=ap-northeast-1c"

    assert calls["token"] == 1
    assert calls["identity"] == 1
    # only the fields missing from the identity document are looked up
    assert calls["meta:hostname"] == 1
    assert calls["meta:public-ipv4"] == 1
    assert calls["meta:instance-type"] == 0
    assert calls["meta:placement/availability-zone"] == 0


@pytest.mark.asyncio
async def test_fallback_fill_never_overwrites_known_values():
    identity = dict(IDENTITY, region="")
    app, calls = make_imds_app(
        identity,
        {
            "placement/availability-zone": "us-east-1a",
            "placement/region": "ap-northeast-1",
        },
    )

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            await provider.get_token()
            parsed = await provider.get_identity()
            await provider.fill_missing(parsed)

            # looked up directly the fallback disagrees, yet the document wins
            assert await provider.get_meta("placement/availability-zone") == "us-east-1a"

    assert parsed.availability_zone == "ap-northeast-1c"
    assert parsed.region == "ap-northeast-1"
    assert calls["meta:placement/region"] == 1


@pytest.mark.asyncio
async def test_fill_missing_keeps_values_set_before_lookup():
    identity = AwsIdentity(availability_zone="eu-west-1b")
    app, _ = make_imds_app(IDENTITY, {"placement/availability-zone": "eu-west-1c"})

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            await provider.get_token()
            await provider.fill_missing(identity)

    assert identity.availability_zone == "eu-west-1b"


@pytest.mark.asyncio
async def test_fallback_failures_are_not_fatal():
    identity = dict(IDENTITY, instanceType="", privateIp="")
    app, calls = make_imds_app(identity, {})

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http,
                CloudInfo(provider="aws", hostname="baseline-host"),
                base_url=base_url(server),
            )
            info = await provider.fetch()

    assert provider.state is AwsFetchState.IDENTITY_FETCHED
    assert info.type == ""
    assert info.hostname == "baseline-host"
    assert len(info.private_ip) == 0
    assert len(info.public_ip) == 0
    assert calls["meta:instance-type"] == 1
    assert calls["meta:local-ipv4"] == 1


@pytest.mark.asyncio
async def test_identity_failure_is_fatal():
    app, calls = make_imds_app(IDENTITY, identity_status=500)

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            with pytest.raises(MetadataStatusError) as excinfo:
                await provider.fetch()

    assert excinfo.value.status == 500
    assert provider.state is AwsFetchState.TOKEN_ACQUIRED
    assert not any(key.startswith("meta:") for key in calls)


@pytest.mark.asyncio
async def test_invalid_identity_document_is_a_parse_error():
    app, _ = make_imds_app(identity_body="{not json")

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            with pytest.raises(MetadataParseError):
                await provider.fetch()


@pytest.mark.asyncio
async def test_blank_token_is_fatal():
    app, calls = make_imds_app(IDENTITY, token="  \n")

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            with pytest.raises(TokenAcquisitionError):
                await provider.fetch()

    assert provider.state is AwsFetchState.NO_TOKEN
    assert provider.token is None
    assert calls["identity"] == 0


@pytest.mark.asyncio
async def test_token_is_fetched_once():
    app, calls = make_imds_app(IDENTITY, {"hostname": "host"})

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            provider = AwsProvider(
                http, CloudInfo(provider="aws"), base_url=base_url(server)
            )
            first = await provider.get_token()
            second = await provider.get_token()
            await provider.fetch()

    assert first == second == TOKEN
    assert calls["token"] == 1


@pytest.mark.asyncio
async def test_unparseable_addresses_are_skipped():
    identity = dict(IDENTITY, privateIp="garbage")
    app, _ = make_imds_app(identity, {"public-ipv4": "54.250.1.2"})

    async with TestServer(app) as server:
        async with MetadataHttpClient() as http:
            info = CloudInfo(provider="aws", private_ip=IPList(["10.0.0.9"]))
            provider = AwsProvider(http, info, base_url=base_url(server))
            await provider.fetch()

    assert info.private_ip.as_strings() == ["10.0.0.9"]
    assert info.public_ip.as_strings() == ["54.250.1.2"]


def test_identity_from_document_tolerates_nulls():
    identity = AwsIdentity.from_document({"accountId": None, "region": " us-east-1 "})

    assert identity.account_id == ""
    assert identity.region == "us-east-1"
