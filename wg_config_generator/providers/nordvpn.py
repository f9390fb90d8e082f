import logging
from typing import Any, List

import pydantic
import requests
from pydantic import BaseModel, Field, IPvAnyAddress, TypeAdapter, field_validator

from ..context import Context
from ..errors import DecodeError, ValidationError
from ..fetch import DEFAULT_TIMEOUT, get_json
from ..wireguard import DEFAULT_WIREGUARD_PORT, Endpoint, Server

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_URL = "https://api.nordvpn.com/v1/users/services/credentials"
DEFAULT_SERVER_LIST_URL = "https://api.nordvpn.com/v1/servers/recommendations"

WIREGUARD_TECHNOLOGY = "wireguard_udp"
PUBLIC_KEY_METADATA = "public_key"
SERVER_LIST_LIMIT = "100000"
TOKEN_USERNAME = "token"


class _PrivateKeyEnvelope(BaseModel):
    nordlynx_private_key: str = Field(min_length=1)


class _Metadata(BaseModel):
    name: str = Field(min_length=1)
    value: str = Field(min_length=1)


class _Technology(BaseModel):
    identifier: str = Field(min_length=1)
    metadata: List[_Metadata] = Field(default_factory=list)

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, value: Any) -> Any:
        return [] if value is None else value


class _NordServer(BaseModel):
    station: IPvAnyAddress
    technologies: List[_Technology] = Field(min_length=1)


_SERVER_LIST = TypeAdapter(List[_NordServer])


class NordVPNPrivateKey:
    def __init__(self, session: requests.Session, token: str, url: str = DEFAULT_CREDENTIALS_URL,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self._session = session
        self._token = token
        self._url = url
        self._timeout = timeout

    def fetch(self, ctx: Context) -> str:
        what = "nordvpn wireguard private key"
        data = get_json(
            self._session,
            ctx,
            self._url,
            what=what,
            auth=(TOKEN_USERNAME, self._token),
            timeout=self._timeout,
        )
        if not isinstance(data, dict):
            raise DecodeError(f"decoding {what}: expected a JSON object, got {type(data).__name__}")
        try:
            envelope = _PrivateKeyEnvelope.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"validating {what}: {e}") from e
        return envelope.nordlynx_private_key


class NordVPNServerList:
    def __init__(self, session: requests.Session, url: str = DEFAULT_SERVER_LIST_URL,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self._session = session
        self._url = url
        self._timeout = timeout

    def list(self, ctx: Context) -> List[Server]:
        what = "nordvpn server list"
        params = {
            "filters[servers_technologies][identifier]": WIREGUARD_TECHNOLOGY,
            "limit": SERVER_LIST_LIMIT,
        }
        data = get_json(self._session, ctx, self._url, what=what, params=params, timeout=self._timeout)
        if not isinstance(data, list):
            raise DecodeError(f"decoding {what}: expected a JSON array, got {type(data).__name__}")
        try:
            raw_servers = _SERVER_LIST.validate_python(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid structure for nordvpn servers: {e}") from e

        servers: List[Server] = []
        for raw in raw_servers:
            tech = next((t for t in raw.technologies if t.identifier == WIREGUARD_TECHNOLOGY), None)
            if tech is None:
                continue
            public_key = next((m.value for m in tech.metadata if m.name == PUBLIC_KEY_METADATA), None)
            if public_key is None:
                raise DecodeError(
                    f"decoding {what}: server {raw.station} advertises {WIREGUARD_TECHNOLOGY} "
                    f"without {PUBLIC_KEY_METADATA} metadata"
                )
            servers.append(Server(public_key, Endpoint(raw.station, DEFAULT_WIREGUARD_PORT)))
        logger.info("nordvpn: %d of %d servers support %s", len(servers), len(raw_servers), WIREGUARD_TECHNOLOGY)
        return servers
