from __future__ import annotations

import pytest

from core.config import AppSettings
from core.domain.errors import SsrfRejected
from core.services.ssrf_guard import SsrfGuard


@pytest.fixture
def guard(settings):
    return SsrfGuard(settings.build_ssrf_policy())


@pytest.mark.parametrize(
    ("url", "reason"),
    [
        ("http://localhost/x.png", "Localhost is not allowed for obraz_url"),
        ("http://img.localhost/x.png", "Localhost is not allowed for obraz_url"),
        ("http://127.0.0.1/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://10.0.0.5/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://192.168.1.1/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://172.20.0.1/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://169.254.169.254/latest/meta-data", "Private IPv4 is not allowed for obraz_url"),
        ("http://100.64.0.1/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://0.0.0.0/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://127.1/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://2130706433/x.png", "Private IPv4 is not allowed for obraz_url"),
        ("http://[::1]/x.png", "Private IPv6 is not allowed for obraz_url"),
        ("http://[fe80::1]/x.png", "Private IPv6 is not allowed for obraz_url"),
        ("http://[fd00::1]/x.png", "Private IPv6 is not allowed for obraz_url"),
        ("http://[::ffff:10.0.0.1]/x.png", "Private IPv6 is not allowed for obraz_url"),
        ("ftp://example.com/x.png", "Only http/https URLs are allowed for obraz_url"),
        ("file:///etc/passwd", "Invalid URL for obraz_url"),
        ("not a url", "Invalid URL for obraz_url"),
        ("http://example.com:99999/x.png", "Invalid URL for obraz_url"),
        ("http://１２７.０.０.１/x.png", "Invalid URL for obraz_url"),
    ],
)
def test_rejected_urls(guard, url, reason):
    with pytest.raises(SsrfRejected) as excinfo:
        guard.validate(url)
    assert excinfo.value.reason == reason
    assert excinfo.value.status_code == 400


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/img.png",
        "http://cdn.example.org:8080/a/b.jpg?x=1",
        "http://8.8.8.8/logo.png",
        "http://[2001:4860:4860::8888]/logo.png",
        "http://172.32.0.1/x.png",
    ],
)
def test_public_urls_pass(guard, url):
    assert guard.validate(url) == url


def test_allowlist_accepts_host_and_subdomains():
    settings = AppSettings(_env_file=None, allowed_image_hosts="Example.com, cdn.other.net")
    guard = SsrfGuard(settings.build_ssrf_policy())

    assert guard.validate("https://example.com/a.png")
    assert guard.validate("https://img.example.com/a.png")
    assert guard.validate("https://cdn.other.net/a.png")
    with pytest.raises(SsrfRejected) as excinfo:
        guard.validate("https://evil-example.com/a.png")
    assert excinfo.value.reason == "Host not allowed for obraz_url"


def test_allowlist_does_not_override_private_ranges():
    settings = AppSettings(_env_file=None, allowed_image_hosts="127.0.0.1")
    guard = SsrfGuard(settings.build_ssrf_policy())
    with pytest.raises(SsrfRejected):
        guard.validate("http://127.0.0.1/a.png")
