from starlette.requests import Request

from core.depends import client_ip
from core.settings import settings


def make_request(headers=None, client=("10.0.0.5", 5000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_forwarded_header_is_ignored_by_default(monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    request = make_request({"X-Forwarded-For": "203.0.113.9"})
    assert client_ip(request) == "10.0.0.5"


def test_forwarded_header_is_used_behind_a_trusted_proxy(monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
    request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert client_ip(request) == "203.0.113.9"


def test_missing_client_falls_back(monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    assert client_ip(make_request(client=None)) == "0.0.0.0"
