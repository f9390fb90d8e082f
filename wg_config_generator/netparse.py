import ipaddress
from typing import Callable, List, TypeVar, Union

from .errors import ParseError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPPrefix = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]

T = TypeVar("T")

MAX_KEEPALIVE = 65535


def parse_separated(text: str, delim: str, parse_one: Callable[[str], T], kind: str) -> List[T]:
    # Empty input is one empty segment and fails like any other bad entry
    segments = [s.strip() for s in text.split(delim)]
    result: List[T] = []
    for segment in segments:
        try:
            result.append(parse_one(segment))
        except ValueError as e:
            raise ParseError(f"invalid {kind} {segment!r}: {e}", segment=segment) from e
    return result


def parse_prefixes(text: str, delim: str = ",") -> List[IPPrefix]:
    return parse_separated(text, delim, ipaddress.ip_interface, "prefix")


def parse_addresses(text: str, delim: str = ",") -> List[IPAddress]:
    return parse_separated(text, delim, ipaddress.ip_address, "address")


def parse_keepalive(value: Union[str, int]) -> int:
    """Parse a keepalive interval in seconds; 0 disables keepalive."""
    if isinstance(value, bool):
        raise ParseError(f"invalid keepalive {value!r}", segment=str(value))
    if isinstance(value, int):
        seconds = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            raise ParseError(f"invalid keepalive {value!r}: not a decimal integer", segment=text)
        seconds = int(text)
    if seconds < 0 or seconds > MAX_KEEPALIVE:
        raise ParseError(f"keepalive out of range: {seconds}", segment=str(value))
    return seconds
