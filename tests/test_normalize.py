# tests/test_normalize.py
from urllib.parse import urlsplit

import pytest

from hostsuffix.errors import HostnameFormatError
from hostsuffix.normalize import clean_host, normalize_source, split_port


def test_normalize_source_url():
    assert normalize_source("HTTPS://User:pw@Sub.Example.Co.UK:8443/path?q=1#frag") == "sub.example.co.uk:8443"
    assert normalize_source(urlsplit("http://Example.com/")) == "example.com"


def test_normalize_source_plain_passthrough():
    assert normalize_source("  host.com:80 ") == "host.com:80"
    assert normalize_source("") == ""


def test_split_port():
    assert split_port("Host.COM:8443") == ("host.com", 8443)
    assert split_port("host.com") == ("host.com", None)
    assert split_port("a:b:80") == ("a:b", 80)


@pytest.mark.parametrize("bad", ["host.com:", "host.com:http", "host.com:-1", "host.com:70000", "host.com:8 0"])
def test_split_port_rejects_bad_port(bad):
    with pytest.raises(HostnameFormatError):
        split_port(bad)


def test_clean_host():
    assert clean_host(" WWW.Example.com. ") == "www.example.com"
    assert clean_host("example.com") == "example.com"
