import ipaddress
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ParseError, ValidationError
from .netparse import MAX_KEEPALIVE, IPAddress, IPPrefix

DEFAULT_WIREGUARD_PORT = 51820


@dataclass(frozen=True)
class Endpoint:
    address: Optional[IPAddress] = None
    port: int = 0

    @property
    def is_valid(self) -> bool:
        return self.address is not None

    @classmethod
    def parse(cls, value: str) -> "Endpoint":
        host, sep, port_text = value.strip().rpartition(":")
        if not sep or not host:
            raise ParseError(f"invalid endpoint {value!r}: expected address:port", segment=value)
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            address = ipaddress.ip_address(host)
            port = int(port_text)
        except ValueError as e:
            raise ParseError(f"invalid endpoint {value!r}: {e}", segment=value) from e
        if port < 0 or port > 65535:
            raise ParseError(f"invalid endpoint {value!r}: port out of range", segment=value)
        return cls(address, port)

    def __str__(self) -> str:
        if self.address is None:
            return ""
        if self.address.version == 6:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class Server:
    """A provider server reduced to what a peer section needs."""

    public_key: str
    endpoint: Endpoint
    endpoint_v6: Endpoint = Endpoint()


@dataclass(frozen=True)
class PeerConfig:
    public_key: str
    endpoint: Endpoint
    allowed_ips: Tuple[IPPrefix, ...] = ()
    persistent_keepalive: int = 0

    def __post_init__(self) -> None:
        if self.persistent_keepalive < 0 or self.persistent_keepalive > MAX_KEEPALIVE:
            raise ValidationError(f"persistent_keepalive out of range: {self.persistent_keepalive}")


@dataclass(frozen=True)
class Configuration:
    private_key: str
    interface_addresses: Tuple[IPPrefix, ...] = ()
    dns: Tuple[IPAddress, ...] = ()
    peers: Tuple[PeerConfig, ...] = ()
