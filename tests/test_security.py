#!/usr/bin/env python3
"""
Tests for SSRF protection of seed addresses
"""

import socket

import pytest
from unittest.mock import patch

from pipelines.errors import UnsafeAddress
from pipelines.security import check_url_ssrf, is_private_ip, validate_url_security


def addrinfo(*ips):
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0)) for ip in ips]


class TestSSRFProtection:
    """Test suite for SSRF protection mechanisms"""

    @pytest.mark.parametrize("url", [
        "http://127.0.0.1/test",
        "http://10.0.0.1/test",
        "http://172.16.0.1/test",
        "http://192.168.1.1/test",
        "http://169.254.1.1/test",
        "http://[::1]/test",
        "http://[fc00::1]/test",
    ])
    def test_private_ip_ranges_blocked(self, url):
        """Test that private IP ranges are blocked"""
        with pytest.raises(UnsafeAddress, match="Private IP address"):
            check_url_ssrf(url)

    def test_localhost_blocked(self):
        with pytest.raises(UnsafeAddress, match="Localhost"):
            check_url_ssrf("http://localhost/test")

    def test_metadata_host_blocked(self):
        with pytest.raises(UnsafeAddress, match="Metadata host"):
            check_url_ssrf("http://metadata.google.internal/computeMetadata/v1/")

    @pytest.mark.parametrize("url", ["http://example.com:22/", "http://example.com:6379/", "https://example.com:5432/"])
    def test_internal_service_ports_blocked(self, url):
        with pytest.raises(UnsafeAddress, match="Port"):
            check_url_ssrf(url, resolve=False)

    def test_non_http_scheme_blocked(self):
        with pytest.raises(UnsafeAddress, match="Scheme"):
            check_url_ssrf("file:///etc/passwd")

    def test_public_ip_allowed(self):
        check_url_ssrf("https://93.184.216.34/docs")

    def test_hostname_resolving_to_private_ip_blocked(self):
        with patch("pipelines.security.socket.getaddrinfo", return_value=addrinfo("10.1.2.3")):
            with pytest.raises(UnsafeAddress, match="private IP"):
                check_url_ssrf("https://intranet.example.com/")

    def test_hostname_resolving_to_public_ip_allowed(self):
        with patch("pipelines.security.socket.getaddrinfo", return_value=addrinfo("93.184.216.34")):
            check_url_ssrf("https://example.com/docs")

    def test_unresolvable_hostname_blocked(self):
        with patch("pipelines.security.socket.getaddrinfo", side_effect=socket.gaierror("nope")):
            is_safe, message = validate_url_security("https://does-not-exist.invalid/")
        assert not is_safe
        assert "Failed to resolve" in message

    def test_resolution_can_be_skipped(self):
        with patch("pipelines.security.socket.getaddrinfo") as getaddrinfo:
            assert validate_url_security("https://example.com/", resolve=False) == (True, None)
        getaddrinfo.assert_not_called()


def test_is_private_ip():
    assert is_private_ip("192.168.0.10")
    assert is_private_ip("not-an-ip")
    assert not is_private_ip("8.8.8.8")
