from __future__ import annotations

import httpx
import pytest

from qmaster.ui import api as ui_api
from qmaster.ui.api import APIError, QMasterAPIClient
from qmaster.ui.utils import format_ticket_number, format_time, pass_headline


class Recorder:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.calls: list[tuple[str, str, dict]] = []

    def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.response


def test_login_stores_token(monkeypatch):
    recorder = Recorder(httpx.Response(200, json={"token": "abc", "user": {"username": "admin"}}))
    monkeypatch.setattr(ui_api.httpx, "request", recorder)
    client = QMasterAPIClient(base_url="http://api/")

    client.login(username="admin", password="123")
    client.list_counters()

    assert client.token == "abc"
    method, url, kwargs = recorder.calls[-1]
    assert (method, url) == ("GET", "http://api/counters")
    assert kwargs["headers"]["Authorization"] == "Bearer abc"


def test_error_detail_is_raised(monkeypatch):
    recorder = Recorder(httpx.Response(409, json={"detail": "No waiting ticket matches the scanned code"}))
    monkeypatch.setattr(ui_api.httpx, "request", recorder)
    client = QMasterAPIClient(base_url="http://api", token="abc")

    with pytest.raises(APIError) as exc:
        client.scan("1", "garbage")

    assert exc.value.status_code == 409
    assert str(exc.value) == "[409] No waiting ticket matches the scanned code"


def test_no_content_returns_none(monkeypatch):
    monkeypatch.setattr(ui_api.httpx, "request", Recorder(httpx.Response(204)))
    client = QMasterAPIClient(base_url="http://api", token="abc")

    assert client.delete_staff("staff-1") is None


def test_audio_is_returned_as_bytes(monkeypatch):
    response = httpx.Response(200, content=b"RIFFdata", headers={"Content-Type": "audio/wav"})
    monkeypatch.setattr(ui_api.httpx, "request", Recorder(response))
    client = QMasterAPIClient(base_url="http://api", token="abc")

    assert client.announcement_audio("1") == b"RIFFdata"


def test_formatting_helpers():
    assert format_ticket_number(104) == "#104"
    assert format_ticket_number(None) == "-"
    assert format_time("2024-05-06T09:05:00Z") == "09:05"
    assert format_time(None) == "-"


def test_pass_headline():
    assert pass_headline({"ticket": None}) == "No active ticket"
    assert pass_headline({"ticket": {"status": "WAITING"}, "people_ahead": 0}) == "You are next in line"
    assert pass_headline({"ticket": {"status": "WAITING"}, "people_ahead": 3}) == "3 people ahead of you"
    assert (
        pass_headline({"ticket": {"status": "CALLING"}, "counter": {"name": "Counter 2"}})
        == "Please proceed to Counter 2"
    )
    assert pass_headline({"ticket": {"status": "SERVED"}}) == "Thank you for visiting"
