import ipaddress

import pytest

from wg_config_generator import ParseError, parse_addresses, parse_keepalive, parse_prefixes


def test_parse_prefixes_trims_segments():
    prefixes = parse_prefixes(" 10.5.0.2/32 ,10.6.0.0/24,  fd00::2/128 ")
    assert prefixes == [
        ipaddress.ip_interface("10.5.0.2/32"),
        ipaddress.ip_interface("10.6.0.0/24"),
        ipaddress.ip_interface("fd00::2/128"),
    ]


def test_parse_prefixes_render_round_trip():
    text = "10.5.0.2/24, 0.0.0.0/0, ::/0"
    assert ", ".join(str(p) for p in parse_prefixes(text)) == text


def test_bare_address_becomes_host_prefix():
    assert [str(p) for p in parse_prefixes("10.5.0.2")] == ["10.5.0.2/32"]


def test_parse_prefixes_custom_delimiter():
    assert len(parse_prefixes("10.0.0.0/8;192.168.0.0/16", ";")) == 2


def test_one_bad_segment_fails_whole_call():
    with pytest.raises(ParseError) as exc:
        parse_prefixes("10.0.0.0/8, 10.1.0.0/33, 10.2.0.0/16")
    assert exc.value.segment == "10.1.0.0/33"
    assert "10.1.0.0/33" in str(exc.value)


def test_empty_input_fails():
    with pytest.raises(ParseError) as exc:
        parse_prefixes("")
    assert exc.value.segment == ""
    with pytest.raises(ParseError):
        parse_addresses("")


def test_trailing_delimiter_is_an_empty_segment():
    with pytest.raises(ParseError):
        parse_addresses("1.1.1.1,")


def test_parse_addresses():
    assert parse_addresses("8.8.8.8, 2001:4860:4860::8888") == [
        ipaddress.ip_address("8.8.8.8"),
        ipaddress.ip_address("2001:4860:4860::8888"),
    ]


def test_address_rejects_prefix():
    with pytest.raises(ParseError) as exc:
        parse_addresses("8.8.8.8, 1.1.1.0/24")
    assert exc.value.segment == "1.1.1.0/24"


@pytest.mark.parametrize("value,expected", [("0", 0), (" 25 ", 25), ("65535", 65535), (42, 42)])
def test_parse_keepalive_ok(value, expected):
    assert parse_keepalive(value) == expected


@pytest.mark.parametrize("value", ["", "-1", "65536", "2.5", "abc", -3, True])
def test_parse_keepalive_invalid(value):
    with pytest.raises(ParseError):
        parse_keepalive(value)
