from __future__ import annotations

import pytest
import requests

from yashell.local.supervisor import health


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr(health.time, "sleep", lambda delay: None)


def test_health_url_uses_configured_port():
    assert health.health_url(port=4000) == "http://127.0.0.1:4000/health"


def test_check_health_reads_status_field(monkeypatch):
    seen = {}

    def fake_get(url, timeout):
        seen.update(url=url, timeout=timeout)
        return FakeResponse(payload={"status": "ok", "uptime": 3})

    monkeypatch.setattr(health.requests, "get", fake_get)

    assert health.check_health("http://127.0.0.1:3001/health", timeout=1) == (True, "ok")
    assert seen == {"url": "http://127.0.0.1:3001/health", "timeout": 1}


def test_check_health_accepts_plain_text(monkeypatch):
    monkeypatch.setattr(health.requests, "get", lambda url, timeout: FakeResponse(text="alive\n"))

    assert health.check_health("http://x/health") == (True, "alive")


def test_check_health_reports_http_error(monkeypatch):
    monkeypatch.setattr(health.requests, "get", lambda url, timeout: FakeResponse(status_code=503))

    healthy, detail = health.check_health("http://x/health")

    assert not healthy
    assert "503" in detail


def test_check_health_reports_connection_error(monkeypatch):
    def refuse(url, timeout):
        raise requests.exceptions.ConnectionError("connection refused")

    monkeypatch.setattr(health.requests, "get", refuse)

    assert health.check_health("http://x/health") == (False, "connection refused")


def test_wait_until_healthy_retries_until_success(monkeypatch, no_sleep):
    answers = iter([(False, "refused"), (False, "refused"), (True, "ok")])
    attempts = []

    def fake_check(url):
        attempts.append(url)
        return next(answers)

    monkeypatch.setattr(health, "check_health", fake_check)

    assert health.wait_until_healthy("http://x/health", retries=5, delay=0)
    assert len(attempts) == 3


def test_wait_until_healthy_gives_up(monkeypatch, no_sleep):
    attempts = []
    monkeypatch.setattr(health, "check_health", lambda url: attempts.append(url) or (False, "refused"))

    assert not health.wait_until_healthy("http://x/health", retries=3, delay=0)
    assert len(attempts) == 3
