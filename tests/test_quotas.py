from types import SimpleNamespace

import pytest
from gspread.exceptions import APIError

from shift_app import quotas
from shift_app.quotas import ReadCache, with_backoff


def _api_error(code):
    body = {"error": {"code": code, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
    return APIError(SimpleNamespace(status_code=code, json=lambda: body, text=str(body)))


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(quotas._pytime, "sleep", calls.append)
    return calls


def test_retries_rate_limits_then_succeeds(sleeps):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise _api_error(429)
        return "ok"

    assert with_backoff(flaky, base=0.1) == "ok"
    assert len(attempts) == 3
    assert len(sleeps) == 2
    assert sleeps[1] > sleeps[0] - 0.4


def test_gives_up_after_last_attempt(sleeps):
    def always_busy():
        raise _api_error(503)

    with pytest.raises(APIError):
        with_backoff(always_busy, retries=3, base=0)
    assert len(sleeps) == 2


def test_other_errors_are_not_retried(sleeps):
    def broken():
        raise KeyError("nope")

    with pytest.raises(KeyError):
        with_backoff(broken)
    assert sleeps == []


def test_read_cache_expires():
    now = [100.0]
    cache = ReadCache(ttl_sec=20, clock=lambda: now[0])
    cache.put("Shifts", [["Day"]])
    now[0] += 19
    assert cache.get("Shifts") == [["Day"]]
    now[0] += 2
    assert cache.get("Shifts") is None

    cache.put("a", 1)
    cache.put("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None and cache.get("b") == 2
    cache.invalidate()
    assert cache.get("b") is None
