from ipaddress import IPv4Address

import pytest

from ftpclient.passive import is_bogus_data_ip, parse_epsv_response, parse_pasv_response


@pytest.mark.parametrize(
    ("cmd_ip", "data_ip", "bogus"),
    [
        ("192.168.1.1", "192.168.1.1", False),
        ("192.168.1.1", "1.1.1.1", True),
        ("10.65.1.1", "1.1.1.1", True),
        ("10.65.25.1", "10.65.8.1", False),
    ],
)
def test_bogus_data_ip(cmd_ip, data_ip, bogus):
    assert is_bogus_data_ip(cmd_ip, data_ip) is bogus


def test_bogus_data_ip_accepts_address_objects():
    assert is_bogus_data_ip(IPv4Address("192.168.1.1"), IPv4Address("1.1.1.1")) is True


def test_multicast_data_ip_is_bogus():
    assert is_bogus_data_ip("224.0.0.1", "224.0.0.1") is True


def test_loopback_mismatch_is_bogus():
    assert is_bogus_data_ip("127.0.0.1", "8.8.8.8") is True
    assert is_bogus_data_ip("127.0.0.1", "127.0.0.1") is False


def test_ipv4_mapped_address_matches_ipv4():
    assert is_bogus_data_ip("::ffff:192.168.1.1", "192.168.1.1") is False


def test_invalid_ip_raises():
    with pytest.raises(ValueError):
        is_bogus_data_ip("not-an-ip", "1.1.1.1")


def test_epsv_port():
    assert parse_epsv_response("Entering Extended Passive Mode (|||6446|)") == 6446


@pytest.mark.parametrize(
    "line",
    ["Entering Extended Passive Mode", "(|||)", "|||abc|", "(|||)x"],
)
def test_epsv_invalid(line):
    with pytest.raises(ValueError):
        parse_epsv_response(line)


@pytest.mark.parametrize("port", [21, 256, 1025, 65535])
def test_pasv_round_trip(port):
    high, low = divmod(port, 256)
    host, parsed = parse_pasv_response(f"Entering Passive Mode (127,0,0,1,{high},{low}).")
    assert host == "127.0.0.1"
    assert parsed == port


@pytest.mark.parametrize(
    "line",
    [
        "Entering Passive Mode",
        "Entering Passive Mode (127,0,0,1,4).",
        "Entering Passive Mode (127,0,0,1,x,1).",
        "Entering Passive Mode )127,0,0,1,4,1(",
    ],
)
def test_pasv_invalid(line):
    with pytest.raises(ValueError):
        parse_pasv_response(line)