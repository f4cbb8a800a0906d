import pytest

from pipelines.errors import InvalidAddress
from pipelines.urls import is_http_url, namespace_for, normalize_url, origin_of


class TestNormalizeUrl:
    """Canonical form used for dedup and storage."""

    def test_fragment_removed(self):
        assert normalize_url("https://example.com/docs/intro#install") == "https://example.com/docs/intro"

    def test_tracking_params_removed_others_kept_in_order(self):
        url = "https://example.com/a/b?x=1&utm_source=news&y=2&gclid=abc&fbclid=z#frag"
        assert normalize_url(url) == "https://example.com/a/b?x=1&y=2"

    def test_query_dropped_when_only_tracking_params(self):
        assert normalize_url("https://example.com/?utm_campaign=spring") == "https://example.com/"

    def test_kept_params_keep_their_encoding(self):
        url = "https://example.com/search?q=a%20b&utm_medium=mail"
        assert normalize_url(url) == "https://example.com/search?q=a%20b"

    def test_scheme_and_host_lowercased(self):
        assert normalize_url("HTTPS://Docs.Example.COM/Guide") == "https://docs.example.com/Guide"

    def test_default_ports_dropped(self):
        assert normalize_url("https://example.com:443/x") == "https://example.com/x"
        assert normalize_url("http://example.com:80/x") == "http://example.com/x"

    def test_non_default_port_kept(self):
        assert normalize_url("https://example.com:8443/x") == "https://example.com:8443/x"

    def test_empty_path_becomes_root(self):
        assert normalize_url("https://example.com") == "https://example.com/"

    def test_repeated_trailing_slashes_collapse(self):
        assert normalize_url("https://example.com/docs//") == "https://example.com/docs/"
        assert normalize_url("https://example.com/docs/") == "https://example.com/docs/"

    def test_custom_strip_params(self):
        url = "https://example.com/p?ref=home&utm_source=x"
        assert normalize_url(url, strip_params={"ref"}) == "https://example.com/p?utm_source=x"

    @pytest.mark.parametrize("url", [
        "https://Example.com/a/b/?utm_source=x&k=v#top",
        "http://example.com:8080/docs//",
        "https://example.com",
        "https://[::1]:8443/x?y=1",
    ])
    def test_idempotent(self, url):
        once = normalize_url(url)
        assert normalize_url(once) == once

    @pytest.mark.parametrize("url", [
        "",
        "not a url",
        "/docs/relative",
        "ftp://example.com/file",
        "mailto:someone@example.com",
        "https://",
        None,
        42,
    ])
    def test_invalid_addresses_rejected(self, url):
        with pytest.raises(InvalidAddress):
            normalize_url(url)


def test_is_http_url():
    assert is_http_url("https://example.com")
    assert is_http_url("http://example.com/docs?x=1")
    assert not is_http_url("example.com")
    assert not is_http_url("file:///etc/passwd")
    assert not is_http_url("https://example.com:notaport/")
    assert not is_http_url(None)


def test_origin_of_fills_default_port():
    assert origin_of("https://Example.com/docs") == ("https", "example.com", 443)
    assert origin_of("http://example.com:8080/") == ("http", "example.com", 8080)


def test_namespace_is_hostname():
    assert namespace_for("https://Docs.Example.com:8443/x?y=1") == "docs.example.com"
