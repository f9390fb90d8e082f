import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import List, Sequence, Tuple

import requests

from .context import Context
from .errors import ConfigGeneratorError, ConfigurationError, GenerationError
from .netparse import IPAddress, IPPrefix
from .providers import (
    MullvadServerList,
    NordVPNPrivateKey,
    NordVPNServerList,
    PrivateKeyFetcher,
    Provider,
    ServerLister,
    StaticPrivateKey,
)
from .wireguard import Configuration, PeerConfig, Server

logger = logging.getLogger(__name__)

# How often the concurrent fetch re-checks the caller's context
WAIT_SLICE = 0.05


class ConfigGenerator:
    """Builds one Configuration per provider server.

    The private key and the server list have no data dependency. With
    `concurrent` set they are fetched on two worker threads and the first
    failure cancels the other fetch.
    """

    def __init__(self, private_key: PrivateKeyFetcher, servers: ServerLister, concurrent: bool = True) -> None:
        self._private_key = private_key
        self._servers = servers
        self._concurrent = concurrent

    def list(
        self,
        ctx: Context,
        interface_addresses: Sequence[IPPrefix],
        allowed_ips: Sequence[IPPrefix],
        persistent_keepalive: int,
        dns: Sequence[IPAddress],
    ) -> List[Configuration]:
        if self._concurrent:
            private_key, servers = self._fetch_concurrently(ctx)
        else:
            private_key = self._fetch_private_key(ctx)
            servers = self._list_servers(ctx)

        # Shared by every configuration produced by this call
        addresses = tuple(interface_addresses)
        allowed = tuple(allowed_ips)
        dns_servers = tuple(dns)

        configs = [
            Configuration(
                private_key=private_key,
                interface_addresses=addresses,
                dns=dns_servers,
                peers=(PeerConfig(s.public_key, s.endpoint, allowed, persistent_keepalive),),
            )
            for s in servers
        ]
        logger.info("generated %d configuration(s)", len(configs))
        return configs

    def _fetch_private_key(self, ctx: Context) -> str:
        try:
            return self._private_key.fetch(ctx)
        except ConfigGeneratorError as e:
            raise GenerationError(f"fetching private key from config generator: {e}") from e

    def _list_servers(self, ctx: Context) -> List[Server]:
        try:
            return self._servers.list(ctx)
        except ConfigGeneratorError as e:
            raise GenerationError(f"fetching servers from config generator: {e}") from e

    def _fetch_concurrently(self, ctx: Context) -> Tuple[str, List[Server]]:
        scope = ctx.child()
        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="wgcg-fetch")
        try:
            key_future = pool.submit(self._fetch_private_key, scope)
            servers_future = pool.submit(self._list_servers, scope)
            pending = {key_future, servers_future}
            while pending:
                done, pending = wait(pending, timeout=WAIT_SLICE, return_when=FIRST_EXCEPTION)
                for future in (key_future, servers_future):
                    if future in done and future.exception() is not None:
                        raise future.exception()  # type: ignore[misc]
                if pending:
                    ctx.raise_if_cancelled("fetching from config generator")
            return key_future.result(), servers_future.result()
        except BaseException:
            scope.cancel()
            raise
        finally:
            pool.shutdown(wait=False, cancel_futures=True)


def build_generator(cfg, session: requests.Session, *, concurrent: bool = True) -> ConfigGenerator:
    """Wire the fetchers for `cfg.provider`; raises ConfigurationError before any I/O."""
    provider = Provider.parse(cfg.provider)
    timeout = float(cfg.timeout)
    if provider is Provider.NORDVPN:
        if not cfg.nordvpn.token:
            raise ConfigurationError("NordVPN token is required")
        return ConfigGenerator(
            NordVPNPrivateKey(session, cfg.nordvpn.token, cfg.nordvpn.credentials_url, timeout),
            NordVPNServerList(session, cfg.nordvpn.server_list_url, timeout),
            concurrent=concurrent,
        )
    if not cfg.mullvad.private_key:
        raise ConfigurationError("Mullvad private key is required")
    return ConfigGenerator(
        StaticPrivateKey(cfg.mullvad.private_key),
        MullvadServerList(session, cfg.mullvad.server_list_url, timeout),
        concurrent=concurrent,
    )
