from app.services import rate_limit
from app.services.rate_limit import SlidingWindowLimiter


def test_blocks_after_max_events_and_reports_wait(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit.time, "monotonic", lambda: clock[0])
    limiter = SlidingWindowLimiter(max_events=2, window_seconds=60)

    assert limiter.hit("1.2.3.4:a@example.com")
    assert limiter.hit("1.2.3.4:a@example.com")
    assert not limiter.hit("1.2.3.4:a@example.com")
    assert limiter.retry_after("1.2.3.4:a@example.com") == 60

    clock[0] += 45
    assert limiter.retry_after("1.2.3.4:a@example.com") == 15
    clock[0] += 15
    assert limiter.hit("1.2.3.4:a@example.com")


def test_keys_are_independent_and_resettable():
    limiter = SlidingWindowLimiter(max_events=1, window_seconds=60)

    assert limiter.hit("a")
    assert limiter.hit("b")
    assert not limiter.hit("a")
    limiter.reset("a")
    assert limiter.hit("a")
    assert limiter.retry_after("c") == 0


def test_wrong_password_is_401(api_client, admin_credentials):
    email, _ = admin_credentials
    res = api_client.post("/auth/login", json={"email": email, "password": "not-the-password"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid credentials"
