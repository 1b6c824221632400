"""Access control gate: IP allow-listing and bearer token authentication."""
import ipaddress
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .config import Settings
from .utils.errors import AuthError
from .utils.security import TokenVerifier, parse_bearer_token

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class AuthContext:
    authenticated: bool
    client_ip: Optional[IPAddress]


def parse_ip(value: Optional[str]) -> Optional[IPAddress]:
    if not value:
        return None
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def first_forwarded_ip(header_value: Optional[str]) -> Optional[IPAddress]:
    """Left-most entry of ``X-Forwarded-For``; None if absent or not an IP."""
    if not header_value:
        return None
    return parse_ip(header_value.split(",")[0])


class AccessGate:
    """Decides whether a request may reach the JSON-RPC dispatcher."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._verifier = TokenVerifier(settings.api_token)

    def resolve_client_ip(
        self, peer_host: Optional[str], forwarded_for: Optional[str]
    ) -> Optional[IPAddress]:
        """Effective client IP, honouring X-Forwarded-For only from trusted proxies."""
        peer_ip = parse_ip(peer_host)
        if peer_ip is not None and any(
            peer_ip in network for network in self.settings.trusted_proxies
        ):
            return first_forwarded_ip(forwarded_for)
        return peer_ip

    def _reject(self, status_code: int, code: str, message: str, context: str) -> AuthError:
        logger.warning(f"authentication failure: reason={code} {context}")
        return AuthError(status_code, code, message)

    def authenticate(
        self,
        peer_host: Optional[str],
        headers: Mapping[str, str],
        context: str = "",
    ) -> AuthContext:
        """Run the IP allowlist and then the token check.

        Args:
            peer_host: Socket peer address as reported by the server.
            headers: Request headers (case-insensitive mapping).
            context: Free text (method and path) added to rejection logs.

        Raises:
            AuthError: 401 missing_token/invalid_token or 403 ip_restricted.
        """
        headers = {key.lower(): value for key, value in headers.items()}
        client_ip = self.resolve_client_ip(peer_host, headers.get("x-forwarded-for"))

        allowed_cidr = self.settings.allowed_cidr
        if allowed_cidr is not None:
            if client_ip is None:
                raise self._reject(
                    403, "ip_restricted", "request source IP could not be determined", context
                )
            if client_ip not in allowed_cidr:
                raise self._reject(
                    403, "ip_restricted", "request source IP is not allowed", context
                )

        header_value = headers.get("authorization")
        if header_value is None:
            raise self._reject(401, "missing_token", "missing authorization header", context)

        token = parse_bearer_token(header_value)
        if token is None:
            raise self._reject(401, "invalid_token", "invalid authorization scheme", context)

        if not self._verifier.verify(token):
            raise self._reject(401, "invalid_token", "invalid bearer token", context)

        return AuthContext(authenticated=True, client_ip=client_ip)
