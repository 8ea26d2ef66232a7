"""Parsing of passive-mode replies and checks on the data address."""

import re
from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network

_INTEGER = re.compile(r"[+-]?[0-9]+")

_PRIVATE_V4 = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
)
_PRIVATE_V6 = ip_network("fc00::/7")


def _to_ip(value: str | IPv4Address | IPv6Address) -> IPv4Address | IPv6Address:
    ip = value if isinstance(value, (IPv4Address, IPv6Address)) else ip_address(value)
    if isinstance(ip, IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _is_private(ip: IPv4Address | IPv6Address) -> bool:
    if isinstance(ip, IPv4Address):
        return any(ip in network for network in _PRIVATE_V4)
    return ip in _PRIVATE_V6


def _atoi(text: str) -> int:
    if _INTEGER.fullmatch(text) is None:
        raise ValueError(f"invalid number: {text!r}")
    return int(text)


def is_bogus_data_ip(
    cmd_ip: str | IPv4Address | IPv6Address, data_ip: str | IPv4Address | IPv6Address
) -> bool:
    """Tell whether a PASV data address is unlikely to be reachable.

    That is when it is multicast, or differs from the control address in
    being private or in being loopback.
    """
    command = _to_ip(cmd_ip)
    data = _to_ip(data_ip)
    return (
        data.is_multicast
        or _is_private(command) != _is_private(data)
        or command.is_loopback != data.is_loopback
    )


def parse_epsv_response(line: str) -> int:
    """Return the port from an EPSV reply such as ``(|||6446|)``."""
    start = line.find("|||")
    end = line.rfind("|")
    if start == -1 or end == -1 or end < start + 3:
        raise ValueError("invalid EPSV response format")
    return _atoi(line[start + 3:end])


def parse_pasv_response(line: str) -> tuple[str, int]:
    """Return the host and port from a PASV reply ``(h1,h2,h3,h4,p1,p2)``."""
    start = line.find("(")
    end = line.rfind(")")
    if start == -1 or end == -1 or end < start:
        raise ValueError("invalid PASV response format")
    parts = line[start + 1:end].split(",")
    if len(parts) < 6:
        raise ValueError("invalid PASV response format")
    port = _atoi(parts[4]) * 256 + _atoi(parts[5])
    return ".".join(parts[:4]), port