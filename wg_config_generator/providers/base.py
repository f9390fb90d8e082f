from typing import List, Protocol

from ..context import Context
from ..wireguard import Server


class PrivateKeyFetcher(Protocol):
    def fetch(self, ctx: Context) -> str:
        ...


class ServerLister(Protocol):
    def list(self, ctx: Context) -> List[Server]:
        ...


class StaticPrivateKey:
    """Private key configured locally, for providers that do not hand one out."""

    def __init__(self, key: str) -> None:
        self._key = key

    def fetch(self, ctx: Context) -> str:
        ctx.raise_if_cancelled("reading static private key")
        return self._key
