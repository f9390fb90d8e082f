from enum import Enum

from ..errors import ConfigurationError
from .base import PrivateKeyFetcher, ServerLister, StaticPrivateKey
from .mullvad import MullvadServerList
from .nordvpn import NordVPNPrivateKey, NordVPNServerList


class Provider(str, Enum):
    NORDVPN = "nordvpn"
    MULLVAD = "mullvad"

    @classmethod
    def parse(cls, slug: str) -> "Provider":
        try:
            return cls(str(slug).strip().lower())
        except ValueError:
            raise ConfigurationError(f"unknown provider: {slug}") from None


__all__ = [
    "Provider",
    "PrivateKeyFetcher",
    "ServerLister",
    "StaticPrivateKey",
    "NordVPNPrivateKey",
    "NordVPNServerList",
    "MullvadServerList",
]
