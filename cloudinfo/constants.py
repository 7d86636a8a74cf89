"""Constants used across the cloudinfo package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "cloudinfo"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_DMI_PATH = Path("/sys/class/dmi/id")

DEFAULT_REQUEST_TIMEOUT_SECONDS = 2.0
DEFAULT_MAX_BODY_BYTES = 1024 * 1024

DEFAULT_SUCCESS_TTL_SECONDS = 24 * 3600.0
DEFAULT_FAILURE_TTL_SECONDS = 3600.0

DEFAULT_AWS_BASE_URL = "http://169.254.169.254/latest"
DEFAULT_AWS_TOKEN_TTL_SECONDS = 60
AWS_TOKEN_HEADER = "X-aws-ec2-metadata-token"
AWS_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"

DEFAULT_GCP_URL = (
    "http://metadata.google.internal/computeMetadata/v1/instance/"
    "?recursive=true&timeout_sec=1"
)
GCP_FLAVOR_HEADERS = {"Metadata-Flavor": "Google"}
