"""Tests for domain helpers and the domain heuristic."""

import pytest

from phishguard.utils.domains import (
    hostname_of,
    is_scannable_url,
    is_suspicious_domain,
    registered_domain,
)


class TestSuspiciousDomain:
    @pytest.mark.parametrize(
        "value",
        [
            "https://secure-paypal.example.com/login",
            "http://verify.bank-alerts.net",
            "https://my-ACCOUNT.example.org",
            "https://signin.example.com",
            "update-now.xyz",
            "https://LOGIN.example.com/",
        ],
    )
    def test_watch_terms_flag_host(self, value):
        assert is_suspicious_domain(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "https://example.com",
            "https://github.com/login",  # term only in path
            "https://example.com/?next=verify",
            "",
            "http://[::1",  # malformed
        ],
    )
    def test_clean_or_malformed_hosts(self, value):
        assert is_suspicious_domain(value) is False


class TestScannableUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "chrome://settings",
            "chrome-extension://abc/popup.html",
            "about:blank",
            "file:///etc/passwd",
            "data:text/html,hi",
            "javascript:alert(1)",
            "mailto:a@b.c",
            "tel:123",
            "ftp://files.example.com",
            "CHROME-DEVTOOLS://x",
            "",
            None,
            42,
        ],
    )
    def test_rejects_internal_and_non_web(self, url):
        assert is_scannable_url(url) is False

    def test_accepts_web_urls(self):
        assert is_scannable_url("https://example.com")
        assert is_scannable_url("http://example.com/path?q=1")


def test_hostname_of_handles_bare_hosts():
    assert hostname_of("Example.COM/path") == "example.com"
    assert hostname_of("https://sub.example.com:8443/x") == "sub.example.com"
    assert hostname_of("") == ""


def test_registered_domain_uses_public_suffixes():
    assert registered_domain("https://login.accounts.example.co.uk/x") == "example.co.uk"
    assert registered_domain("secure.paypal.com") == "paypal.com"
    assert registered_domain("localhost") == "localhost"
