import pytest

from ssdp_discovery_endpoint import SsdpError, SsdpUrl


def test_parse_scheme_node_service():
    url = SsdpUrl.parse("tcp://hostX:1234")
    assert (url.scheme, url.node, url.service) == ("tcp", "hostX", "1234")
    assert url.to_string() == "tcp://hostX:1234"


def test_parse_ipv6_node():
    url = SsdpUrl.parse("udp://[ff02::c]:1900")
    assert url.node == "ff02::c"
    assert url.service == "1900"
    assert str(url) == "udp://[ff02::c]:1900"


def test_parse_discards_path():
    url = SsdpUrl.parse("http://192.168.1.5:8080/description.xml")
    assert url.node == "192.168.1.5"
    assert url.service == "8080"


def test_parse_without_scheme_or_service():
    assert SsdpUrl.parse("239.255.255.250:1900") == SsdpUrl("", "239.255.255.250", "1900")
    assert SsdpUrl.parse("tcp://hostX") == SsdpUrl("tcp", "hostX", "")
    assert SsdpUrl.parse("fe80::1") == SsdpUrl("", "fe80::1", "")


def test_parse_malformed_ipv6():
    with pytest.raises(SsdpError):
        SsdpUrl.parse("tcp://[fe80::1:1234")
    with pytest.raises(SsdpError):
        SsdpUrl.parse("tcp://[fe80::1]x")


def test_without_scheme_for_host_header():
    assert SsdpUrl("udp", "239.255.255.250", 1900).without_scheme().to_string() == "239.255.255.250:1900"
    assert SsdpUrl("udp", "ff02::c", 1900).without_scheme().to_string() == "[ff02::c]:1900"


def test_sockaddr_conversion():
    assert SsdpUrl("udp", "ff02::c", 1900).to_sockaddr() == ("ff02::c", 1900)
    assert SsdpUrl.from_sockaddr("tcp", ("10.0.0.1", 5000)).to_string() == "tcp://10.0.0.1:5000"
    assert SsdpUrl.from_sockaddr("tcp", ("fe80::1%eth0", 5000, 0, 2)).to_string() == "tcp://[fe80::1%eth0]:5000"
    with pytest.raises(SsdpError):
        SsdpUrl("udp", "hostX", "ssdp").to_sockaddr()
