"""Process configuration loaded once from the environment."""
import ipaddress
import logging
import os
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .utils.errors import ConfigError

logger = logging.getLogger(__name__)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

MIN_TOKEN_LENGTH = 16

ENV_FIELDS = {
    "MCP_API_TOKEN": "api_token",
    "BIND_ADDR": "bind_addr",
    "BIND_PORT": "bind_port",
    "MCP_ALLOWED_CIDR": "allowed_cidr",
    "MCP_TRUSTED_PROXIES": "trusted_proxies",
    "MCP_ADAPTER_TIMEOUT_SECONDS": "adapter_timeout_seconds",
    "MCP_JOURNAL_MAX_ENTRIES": "journal_max_entries",
    "LOG_LEVEL": "log_level",
}


def parse_network(value: str) -> IPNetwork:
    """Parse a CIDR or bare address; a bare address becomes a /32 or /128."""
    return ipaddress.ip_network(value.strip(), strict=False)


class Settings(BaseModel):
    """Immutable server configuration shared by every request handler."""

    model_config = ConfigDict(frozen=True)

    api_token: str = Field(repr=False)
    bind_addr: str = "127.0.0.1"
    bind_port: int = Field(default=8080, ge=1, le=65535)
    allowed_cidr: Optional[IPNetwork] = None
    trusted_proxies: Tuple[IPNetwork, ...] = ()
    adapter_timeout_seconds: float = Field(default=10.0, gt=0)
    journal_max_entries: int = Field(default=10000, ge=1)
    log_level: str = "INFO"

    @field_validator("api_token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> str:
        token = str(value or "").strip()
        if len(token) < MIN_TOKEN_LENGTH:
            raise ValueError(f"must be at least {MIN_TOKEN_LENGTH} characters")
        return token

    @field_validator("bind_addr", mode="before")
    @classmethod
    def _check_bind_addr(cls, value: Any) -> str:
        address = str(value).strip()
        ipaddress.ip_address(address)
        return address

    @field_validator("allowed_cidr", mode="before")
    @classmethod
    def _parse_allowed_cidr(cls, value: Any) -> Optional[IPNetwork]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, str):
            return parse_network(value)
        return value

    @field_validator("trusted_proxies", mode="before")
    @classmethod
    def _parse_trusted_proxies(cls, value: Any) -> Tuple[IPNetwork, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        networks: List[IPNetwork] = []
        for item in value:
            if isinstance(item, str):
                if not item.strip():
                    continue
                networks.append(parse_network(item))
            else:
                networks.append(item)
        return tuple(networks)

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: Any) -> str:
        level = str(value).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ConfigError: naming the offending variable.
        """
        environ = os.environ if environ is None else environ
        values = {
            field: environ[name] for name, field in ENV_FIELDS.items() if name in environ
        }
        if "api_token" not in values:
            raise ConfigError("MCP_API_TOKEN is required")
        try:
            settings = cls(**values)
        except ValidationError as e:
            field = str(e.errors()[0]["loc"][0]) if e.errors() else ""
            env_name = next((n for n, f in ENV_FIELDS.items() if f == field), field)
            raise ConfigError(f"{env_name} is invalid: {e.errors()[0]['msg']}") from e
        logger.info(
            f"Configuration loaded: bind={settings.bind_addr}:{settings.bind_port} "
            f"allowed_cidr={settings.allowed_cidr} trusted_proxies={len(settings.trusted_proxies)}"
        )
        return settings
