"""Renderers for the wg-quick INI format and the WireGuard userspace (IPC) format."""
import base64
import binascii
from typing import Dict, List, Optional

from .errors import InvalidKeyError, ParseError
from .netparse import parse_addresses, parse_keepalive, parse_prefixes
from .wireguard import Configuration, Endpoint, PeerConfig

WG_KEY_LEN = 32


def key_to_hex(key: str) -> str:
    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyError(f"parse key: {e}") from e
    if len(raw) != WG_KEY_LEN:
        raise InvalidKeyError(f"parse key: invalid key length {len(raw)} (expected {WG_KEY_LEN})")
    return raw.hex()


def to_ini_format(config: Configuration) -> str:
    lines: list[str] = []
    lines.append("[Interface]\n")
    lines.append(f"PrivateKey = {config.private_key}\n")
    lines.append(f"Address = {', '.join(str(a) for a in config.interface_addresses)}\n")
    if config.dns:
        lines.append(f"DNS = {', '.join(str(d) for d in config.dns)}\n")

    for peer in config.peers:
        lines.append("\n[Peer]\n")
        lines.append(f"PublicKey = {peer.public_key}\n")
        lines.append(f"AllowedIPs = {', '.join(str(p) for p in peer.allowed_ips)}\n")
        if peer.endpoint.is_valid:
            lines.append(f"Endpoint = {peer.endpoint}\n")
        lines.append(f"PersistentKeepalive = {int(peer.persistent_keepalive)}\n")
    return "".join(lines)


def to_ipc_format(config: Configuration) -> str:
    try:
        private_hex = key_to_hex(config.private_key)
    except InvalidKeyError as e:
        raise InvalidKeyError(f"invalid private_key: {e}") from e

    lines: list[str] = [f"private_key={private_hex}\n", "listen_port=0\n"]
    for idx, peer in enumerate(config.peers):
        try:
            public_hex = key_to_hex(peer.public_key)
        except InvalidKeyError as e:
            raise InvalidKeyError(f"invalid public_key for peer {idx}: {e}") from e
        lines.append(f"public_key={public_hex}\n")
        if peer.endpoint.is_valid:
            lines.append(f"endpoint={peer.endpoint}\n")
        lines.append("replace_allowed_ips=true\n")
        for prefix in peer.allowed_ips:
            lines.append(f"allowed_ip={prefix}\n")
        if peer.persistent_keepalive > 0:
            lines.append(f"persistent_keepalive_interval={int(peer.persistent_keepalive)}\n")
    # An empty line ends a UAPI set operation
    lines.append("\n")
    return "".join(lines)


def parse_ini_format(text: str) -> Configuration:
    """Read a configuration written by `to_ini_format` (or by hand) back."""
    interface: Optional[Dict[str, str]] = None
    peers: List[Dict[str, str]] = []
    current: Optional[Dict[str, str]] = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].split(";", 1)[0].strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip().lower()
            if section == "interface":
                if interface is not None:
                    raise ParseError(f"line {lineno}: duplicate [Interface] section", segment=raw)
                interface = {}
                current = interface
            elif section == "peer":
                current = {}
                peers.append(current)
            else:
                raise ParseError(f"line {lineno}: unknown section {line}", segment=raw)
            continue
        key, sep, value = line.partition("=")
        if not sep or current is None:
            raise ParseError(f"line {lineno}: expected key = value inside a section", segment=raw)
        current[key.strip().lower()] = value.strip()

    if interface is None:
        raise ParseError("missing [Interface] section")
    if not interface.get("privatekey"):
        raise ParseError("[Interface] is missing PrivateKey")

    return Configuration(
        private_key=interface["privatekey"],
        interface_addresses=tuple(parse_prefixes(interface["address"])) if interface.get("address") else (),
        dns=tuple(parse_addresses(interface["dns"])) if interface.get("dns") else (),
        peers=tuple(_peer_from_section(p) for p in peers),
    )


def _peer_from_section(section: Dict[str, str]) -> PeerConfig:
    if not section.get("publickey"):
        raise ParseError("[Peer] is missing PublicKey")
    endpoint = Endpoint.parse(section["endpoint"]) if section.get("endpoint") else Endpoint()
    allowed = tuple(parse_prefixes(section["allowedips"])) if section.get("allowedips") else ()
    keepalive = parse_keepalive(section.get("persistentkeepalive") or "0")
    return PeerConfig(section["publickey"], endpoint, allowed, keepalive)
