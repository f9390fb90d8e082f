import base64
import ipaddress

import pytest

from conftest import PRIVATE_KEY, PUBLIC_KEY
from wg_config_generator import (
    Configuration,
    Endpoint,
    InvalidKeyError,
    ParseError,
    PeerConfig,
    ValidationError,
    parse_ini_format,
    parse_prefixes,
    to_ini_format,
    to_ipc_format,
)


def make_config(peers=None, dns=("1.1.1.1", "8.8.8.8")) -> Configuration:
    if peers is None:
        peers = (
            PeerConfig(
                PUBLIC_KEY,
                Endpoint(ipaddress.ip_address("62.3.36.228"), 51820),
                tuple(parse_prefixes("0.0.0.0/0, ::/0")),
                25,
            ),
        )
    return Configuration(
        private_key=PRIVATE_KEY,
        interface_addresses=tuple(parse_prefixes("10.5.0.2/32, fd00::2/128")),
        dns=tuple(ipaddress.ip_address(d) for d in dns),
        peers=tuple(peers),
    )


def test_ini_layout():
    text = to_ini_format(make_config())
    assert text == (
        "[Interface]\n"
        f"PrivateKey = {PRIVATE_KEY}\n"
        "Address = 10.5.0.2/32, fd00::2/128\n"
        "DNS = 1.1.1.1, 8.8.8.8\n"
        "\n[Peer]\n"
        f"PublicKey = {PUBLIC_KEY}\n"
        "AllowedIPs = 0.0.0.0/0, ::/0\n"
        "Endpoint = 62.3.36.228:51820\n"
        "PersistentKeepalive = 25\n"
    )


def test_ini_omits_invalid_endpoint_and_empty_dns():
    peer = PeerConfig(PUBLIC_KEY, Endpoint(), tuple(parse_prefixes("10.0.0.0/8")), 0)
    text = to_ini_format(make_config(peers=[peer], dns=()))
    assert "Endpoint" not in text
    assert "DNS" not in text
    assert "PersistentKeepalive = 0" in text


def test_ini_peer_sections_follow_input_order():
    keys = [base64.b64encode(bytes([i]) * 32).decode() for i in range(3)]
    peers = [PeerConfig(k, Endpoint(ipaddress.ip_address("10.0.0.1"), 51820 + i)) for i, k in enumerate(keys)]
    text = to_ini_format(make_config(peers=peers))
    assert text.count("[Peer]") == 3
    positions = [text.index(k) for k in keys]
    assert positions == sorted(positions)


def test_ini_zero_peers():
    text = to_ini_format(make_config(peers=[]))
    assert "[Peer]" not in text
    assert text.startswith("[Interface]\n")


def test_ipv6_endpoint_is_bracketed():
    endpoint = Endpoint(ipaddress.ip_address("2a03:b0c0::1"), 51820)
    assert str(endpoint) == "[2a03:b0c0::1]:51820"
    assert Endpoint.parse(str(endpoint)) == endpoint


def test_ini_round_trip():
    config = make_config()
    parsed = parse_ini_format(to_ini_format(config))
    assert parsed == config
    assert set(parsed.interface_addresses) == set(config.interface_addresses)
    assert parsed.peers[0].persistent_keepalive == 25


def test_parse_ini_accepts_comments_and_case():
    text = (
        "# generated\n"
        "[interface]\n"
        f"privatekey = {PRIVATE_KEY}\n"
        "ADDRESS = 10.5.0.2/32\n"
        "\n"
        "[Peer]\n"
        f"PublicKey = {PUBLIC_KEY}  # nordvpn\n"
        "AllowedIPs = 0.0.0.0/0\n"
    )
    config = parse_ini_format(text)
    assert config.dns == ()
    assert config.peers[0].public_key == PUBLIC_KEY
    assert not config.peers[0].endpoint.is_valid
    assert config.peers[0].persistent_keepalive == 0


@pytest.mark.parametrize(
    "text",
    [
        "",
        "[Peer]\nPublicKey = x\n",
        f"[Interface]\nPrivateKey = {PRIVATE_KEY}\n[Bogus]\n",
        f"[Interface]\nPrivateKey = {PRIVATE_KEY}\nAddress 10.0.0.1/32\n",
        f"[Interface]\nPrivateKey = {PRIVATE_KEY}\nAddress = nope\n",
        f"[Interface]\nPrivateKey = {PRIVATE_KEY}\n[Peer]\nPublicKey = {PUBLIC_KEY}\nEndpoint = 1.2.3.4\n",
    ],
)
def test_parse_ini_rejects_malformed(text):
    with pytest.raises(ParseError):
        parse_ini_format(text)


def test_ipc_layout():
    text = to_ipc_format(make_config())
    private_hex = base64.b64decode(PRIVATE_KEY).hex()
    public_hex = base64.b64decode(PUBLIC_KEY).hex()
    assert text == (
        f"private_key={private_hex}\n"
        "listen_port=0\n"
        f"public_key={public_hex}\n"
        "endpoint=62.3.36.228:51820\n"
        "replace_allowed_ips=true\n"
        "allowed_ip=0.0.0.0/0\n"
        "allowed_ip=::/0\n"
        "persistent_keepalive_interval=25\n"
        "\n"
    )


def test_ipc_omits_invalid_endpoint_and_zero_keepalive():
    peer = PeerConfig(PUBLIC_KEY, Endpoint(), tuple(parse_prefixes("10.0.0.0/8")), 0)
    text = to_ipc_format(make_config(peers=[peer]))
    assert "endpoint=" not in text
    assert "persistent_keepalive_interval" not in text
    assert text.count("replace_allowed_ips=true") == 1


def test_ipc_rejects_short_private_key():
    config = Configuration(private_key=base64.b64encode(b"\x01" * 31).decode())
    with pytest.raises(InvalidKeyError) as exc:
        to_ipc_format(config)
    assert "private_key" in str(exc.value)
    assert "31" in str(exc.value)


def test_ipc_rejects_bad_peer_key():
    peers = [
        PeerConfig(PUBLIC_KEY, Endpoint()),
        PeerConfig("not base64!", Endpoint()),
    ]
    with pytest.raises(InvalidKeyError) as exc:
        to_ipc_format(make_config(peers=peers))
    assert "public_key for peer 1" in str(exc.value)


def test_peer_keepalive_range():
    with pytest.raises(ValidationError):
        PeerConfig(PUBLIC_KEY, Endpoint(), (), 70000)
