"""Configuration loader for cloudinfo."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class MetadataConfig:
    request_timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS
    max_body_bytes: int = constants.DEFAULT_MAX_BODY_BYTES
    success_ttl_seconds: float = constants.DEFAULT_SUCCESS_TTL_SECONDS
    failure_ttl_seconds: float = constants.DEFAULT_FAILURE_TTL_SECONDS
    aws_base_url: str = constants.DEFAULT_AWS_BASE_URL
    aws_token_ttl_seconds: int = constants.DEFAULT_AWS_TOKEN_TTL_SECONDS
    gcp_url: str = constants.DEFAULT_GCP_URL


@dataclass(slots=True)
class DmiConfig:
    path: Path = constants.DEFAULT_DMI_PATH


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class CloudInfoConfig:
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    dmi: DmiConfig = field(default_factory=DmiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    raw: ConfigParser = field(default_factory=lambda: ConfigParser(interpolation=None))
    path: Path = constants.DEFAULT_CONFIG_PATH


def _getfloat(parser: ConfigParser, section: str, option: str, default: float) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        return default


def _getint(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        return default


def load_config(path: Optional[Path] = None) -> CloudInfoConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser(interpolation=None)
    parser.read_dict(
        {
            "metadata": {
                "request_timeout_seconds": str(
                    constants.DEFAULT_REQUEST_TIMEOUT_SECONDS
                ),
                "max_body_bytes": str(constants.DEFAULT_MAX_BODY_BYTES),
                "success_ttl_seconds": str(constants.DEFAULT_SUCCESS_TTL_SECONDS),
                "failure_ttl_seconds": str(constants.DEFAULT_FAILURE_TTL_SECONDS),
                "aws_base_url": constants.DEFAULT_AWS_BASE_URL,
                "aws_token_ttl_seconds": str(constants.DEFAULT_AWS_TOKEN_TTL_SECONDS),
                "gcp_url": constants.DEFAULT_GCP_URL,
            },
            "dmi": {
                "path": str(constants.DEFAULT_DMI_PATH),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    defaults = MetadataConfig()

    request_timeout = _getfloat(
        parser, "metadata", "request_timeout_seconds", defaults.request_timeout_seconds
    )
    if request_timeout <= 0:
        request_timeout = defaults.request_timeout_seconds

    metadata = MetadataConfig(
        request_timeout_seconds=request_timeout,
        max_body_bytes=max(
            1, _getint(parser, "metadata", "max_body_bytes", defaults.max_body_bytes)
        ),
        success_ttl_seconds=max(
            0.0,
            _getfloat(
                parser, "metadata", "success_ttl_seconds", defaults.success_ttl_seconds
            ),
        ),
        failure_ttl_seconds=max(
            0.0,
            _getfloat(
                parser, "metadata", "failure_ttl_seconds", defaults.failure_ttl_seconds
            ),
        ),
        aws_base_url=parser.get(
            "metadata", "aws_base_url", fallback=defaults.aws_base_url
        ),
        aws_token_ttl_seconds=max(
            1,
            _getint(
                parser,
                "metadata",
                "aws_token_ttl_seconds",
                defaults.aws_token_ttl_seconds,
            ),
        ),
        gcp_url=parser.get("metadata", "gcp_url", fallback=defaults.gcp_url),
    )

    dmi = DmiConfig(
        path=Path(
            parser.get("dmi", "path", fallback=str(constants.DEFAULT_DMI_PATH))
        ).expanduser(),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return CloudInfoConfig(
        metadata=metadata,
        dmi=dmi,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )


def save_config(config: CloudInfoConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
