from .config import (
    RootConfig,
    NordVPNSettings,
    MullvadSettings,
    CIDR,
    WireGuardKey,
)
from .context import Context
from .errors import (
    ConfigGeneratorError,
    ConfigurationError,
    ParseError,
    NetworkError,
    CancellationError,
    UnexpectedStatusError,
    DecodeError,
    ValidationError,
    InvalidKeyError,
    GenerationError,
)
from .formats import parse_ini_format, to_ini_format, to_ipc_format
from .generator import ConfigGenerator, build_generator
from .netparse import parse_addresses, parse_keepalive, parse_prefixes
from .providers import Provider
from .wireguard import Configuration, Endpoint, PeerConfig, Server

__all__ = [
    "RootConfig",
    "NordVPNSettings",
    "MullvadSettings",
    "CIDR",
    "WireGuardKey",
    "Context",
    "ConfigGeneratorError",
    "ConfigurationError",
    "ParseError",
    "NetworkError",
    "CancellationError",
    "UnexpectedStatusError",
    "DecodeError",
    "ValidationError",
    "InvalidKeyError",
    "GenerationError",
    "parse_ini_format",
    "to_ini_format",
    "to_ipc_format",
    "ConfigGenerator",
    "build_generator",
    "parse_addresses",
    "parse_keepalive",
    "parse_prefixes",
    "Provider",
    "Configuration",
    "Endpoint",
    "PeerConfig",
    "Server",
]
