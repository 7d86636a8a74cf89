import ipaddress

import pytest

from cloudinfo.core.models import (
    DMI,
    CloudInfo,
    IPList,
    Location,
    LocationList,
    make_location,
    normalize_address,
)


def test_location_string() -> None:
    info = CloudInfo(
        provider="test",
        account_id="123456",
        architecture="x86_64",
        public_ip=IPList(["1.2.3.4"]),
        private_ip=IPList(["10.0.0.1"]),
        hostname="localhost.localdomain",
        image="image-disk",
        id="i-1232456",
        type="testCloud",
        location=LocationList(
            [Location("cloud", "test"), Location("zone", "testzone")]
        ),
        dmi=DMI(cloud="test", sys_vendor="test123", product_name="unittest"),
    )

    assert str(info.location) == "cloud=test,zone=testzone"
    assert str(info.location[1]) == "zone=testzone"


def test_make_location_builds_ordered_pairs() -> None:
    location = make_location("cloud", "gcp", "region", "asia-northeast1", "zone", "b")

    assert [entry.type for entry in location] == ["cloud", "region", "zone"]
    assert location.get("region") == "asia-northeast1"
    assert location.get("rack") == ""


def test_make_location_rejects_odd_arguments() -> None:
    with pytest.raises(ValueError):
        make_location("cloud", "aws", "region")


def test_empty_location_renders_empty_string() -> None:
    assert str(LocationList()) == ""


def test_iplist_ignores_duplicates() -> None:
    addrs = IPList()

    assert addrs.add("10.0.0.1") is True
    assert addrs.add("10.0.0.1") is False
    assert addrs.add(ipaddress.ip_address("10.0.0.1")) is False
    assert len(addrs) == 1


def test_iplist_collapses_ipv4_mapped_addresses() -> None:
    addrs = IPList(["::ffff:192.168.1.5"])
    addrs.add("192.168.1.5")

    assert len(addrs) == 1
    assert addrs.as_strings() == ["192.168.1.5"]
    assert "::ffff:192.168.1.5" in addrs


def test_iplist_keeps_insertion_order() -> None:
    addrs = IPList(["10.0.0.3", "2001:db8::1", "10.0.0.1", "10.0.0.3"])

    assert addrs.as_strings() == ["10.0.0.3", "2001:db8::1", "10.0.0.1"]


def test_iplist_family_helpers() -> None:
    addrs = IPList(["2001:db8::1", "10.0.0.1", "2001:db8::2", "10.0.0.2"])

    assert addrs.first_v4() == ipaddress.IPv4Address("10.0.0.1")
    assert addrs.first_v6() == ipaddress.IPv6Address("2001:db8::1")
    assert addrs.v4().as_strings() == ["10.0.0.1", "10.0.0.2"]
    assert addrs.v6().as_strings() == ["2001:db8::1", "2001:db8::2"]
    assert IPList(["10.0.0.1"]).first_v6() is None


def test_iplist_rejects_invalid_address() -> None:
    with pytest.raises(ValueError):
        IPList().add_string("not-an-ip")


def test_frozen_iplist_refuses_additions() -> None:
    addrs = IPList(["10.0.0.1"])
    addrs.freeze()

    with pytest.raises(TypeError):
        addrs.add("10.0.0.2")


def test_normalize_address_drops_zone() -> None:
    assert normalize_address("fe80::1%eth0") == ipaddress.IPv6Address("fe80::1")


def test_as_dict_omits_empty_fields() -> None:
    info = CloudInfo(
        provider="gcp",
        private_ip=IPList(["::ffff:10.146.0.2"]),
        location=make_location("cloud", "gcp"),
        dmi=DMI(cloud="gcp", sys_vendor="Google"),
    )

    payload = info.as_dict()

    assert payload == {
        "provider": "gcp",
        "private_ip": ["10.146.0.2"],
        "location": [{"type": "cloud", "value": "gcp"}],
        "dmi": {"cloud": "gcp", "sys_vendor": "Google"},
    }


def test_frozen_record_is_read_only() -> None:
    info = CloudInfo(provider="aws", hostname="host")
    info.freeze()

    assert info.frozen
    with pytest.raises(AttributeError):
        info.hostname = "other"
    with pytest.raises(TypeError):
        info.public_ip.add("1.2.3.4")
    assert info.hostname == "host"
