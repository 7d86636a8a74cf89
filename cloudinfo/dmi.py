"""Hardware descriptor (DMI) reader and provider detection."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_DMI_PATH
from .core.models import DMI
from .providers.base import ProviderKind

LOGGER = logging.getLogger(__name__)

DMI_FIELDS = (
    "sys_vendor",
    "product_name",  # m5a.large on aws, "Google Compute Engine" on gcp
    "product_version",
    "product_uuid",  # root only on most distributions
    "board_asset_tag",
    "chassis_asset_tag",  # "Amazon EC2" on aws, empty on gcp
)

# Placeholders some firmware ships instead of leaving a field empty.
PLACEHOLDER_VALUES = frozenset(
    {
        "to be filled by o.e.m.",
        "default string",
        "not specified",
    }
)

VENDOR_PROVIDERS = {
    "Amazon EC2": ProviderKind.AWS,
    "Google": ProviderKind.GCP,
}


def clean_value(value: str) -> str:
    value = value.strip()
    if value.lower() in PLACEHOLDER_VALUES:
        return ""
    return value


def read_dmi_field(name: str, root: Path = DEFAULT_DMI_PATH) -> str:
    """Read a single DMI field; unreadable fields read as empty."""
    try:
        raw = (root / name).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        LOGGER.debug("Could not read DMI field %s: %s", name, exc)
        return ""
    return clean_value(raw)


def detect_provider(dmi: DMI) -> ProviderKind:
    """Classify the host provider from its hardware descriptor."""
    vendor = dmi.sys_vendor

    kind = VENDOR_PROVIDERS.get(vendor)
    if kind is not None:
        return kind
    if vendor.lower() == "scaleway":
        return ProviderKind.SCALEWAY
    if vendor == "Xen" and "amazon" in dmi.product_version.lower():
        # older EC2 instances run on Xen and report e.g. "4.11.amazon"
        return ProviderKind.AWS

    # To add a provider, collect the output of:
    #   for f in /sys/class/dmi/id/*; do echo $f; cat $f; done
    return ProviderKind.UNKNOWN


def read_dmi(root: Optional[Path] = None) -> DMI:
    """Read the hardware descriptor and classify its provider."""
    dmi_root = root or DEFAULT_DMI_PATH
    values = {name: read_dmi_field(name, dmi_root) for name in DMI_FIELDS}
    dmi = DMI(**values)
    return replace(dmi, cloud=detect_provider(dmi).value)
