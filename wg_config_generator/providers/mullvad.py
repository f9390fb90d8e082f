import logging
from ipaddress import IPv4Address, IPv6Address
from typing import Any, List, Optional

import pydantic
import requests
from pydantic import BaseModel, TypeAdapter, field_validator, model_validator

from ..context import Context
from ..errors import DecodeError, ValidationError
from ..fetch import DEFAULT_TIMEOUT, get_json
from ..wireguard import DEFAULT_WIREGUARD_PORT, Endpoint, Server

logger = logging.getLogger(__name__)

DEFAULT_SERVER_LIST_URL = "https://api.mullvad.net/www/relays/wireguard/"


class _MullvadRelay(BaseModel):
    ipv4_addr_in: Optional[IPv4Address] = None
    ipv6_addr_in: Optional[IPv6Address] = None
    pubkey: str = ""

    @field_validator("ipv4_addr_in", "ipv6_addr_in", mode="before")
    @classmethod
    def _empty_is_missing(cls, value: Any) -> Any:
        return value or None

    @model_validator(mode="after")
    def _require_an_address(self) -> "_MullvadRelay":
        if self.ipv4_addr_in is None and self.ipv6_addr_in is None:
            raise ValueError("ipv4_addr_in or ipv6_addr_in is required")
        return self


_RELAY_LIST = TypeAdapter(List[_MullvadRelay])


class MullvadServerList:
    def __init__(self, session: requests.Session, url: str = DEFAULT_SERVER_LIST_URL,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self._session = session
        self._url = url
        self._timeout = timeout

    def list(self, ctx: Context) -> List[Server]:
        what = "mullvad server list"
        data = get_json(self._session, ctx, self._url, what=what, timeout=self._timeout)
        if not isinstance(data, list):
            raise DecodeError(f"decoding {what}: expected a JSON array, got {type(data).__name__}")
        try:
            relays = _RELAY_LIST.validate_python(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid structure for mullvad servers: {e}") from e

        servers: List[Server] = []
        for relay in relays:
            if not relay.pubkey:
                continue
            endpoint_v6 = Endpoint()
            if relay.ipv6_addr_in is not None:
                endpoint_v6 = Endpoint(relay.ipv6_addr_in, DEFAULT_WIREGUARD_PORT)
            if relay.ipv4_addr_in is not None:
                endpoint = Endpoint(relay.ipv4_addr_in, DEFAULT_WIREGUARD_PORT)
            else:
                endpoint = endpoint_v6
            servers.append(Server(relay.pubkey, endpoint, endpoint_v6))
        logger.info("mullvad: %d of %d relays publish a wireguard key", len(servers), len(relays))
        return servers
