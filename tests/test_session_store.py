import threading
from datetime import datetime, timedelta, timezone

import pytest

from postgate.auth.session import SessionStore, sign_token, unsign_token


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_create_then_resolve_returns_user_id(sessions):
    token = sessions.create(7)
    assert sessions.resolve(token) == 7


def test_tokens_are_long_and_distinct(sessions):
    tokens = {sessions.create(1) for _ in range(50)}
    assert len(tokens) == 50
    # token_urlsafe(32) -> 43 chars, 256 bits
    assert all(len(t) >= 43 for t in tokens)


def test_unknown_and_empty_tokens_resolve_to_none(sessions):
    assert sessions.resolve("nope") is None
    assert sessions.resolve("") is None
    assert sessions.resolve(None) is None


def test_destroyed_token_never_resolves_again(sessions):
    token = sessions.create(1)
    sessions.destroy(token)
    assert sessions.resolve(token) is None
    sessions.destroy(token)
    sessions.destroy("unknown")
    sessions.destroy(None)
    assert sessions.resolve(token) is None


def test_default_ttl_is_seven_days(sessions):
    assert sessions.ttl == timedelta(days=7)


def test_ttl_comes_from_environment(monkeypatch):
    monkeypatch.setenv("POSTGATE_SESSION_TTL", "60")
    assert SessionStore().ttl == timedelta(seconds=60)


def test_session_expires_at_ttl_boundary():
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(minutes=5), clock=clock)
    token = store.create(3)
    clock.now += timedelta(minutes=5) - timedelta(seconds=1)
    assert store.resolve(token) == 3
    clock.now += timedelta(seconds=1)
    assert store.resolve(token) is None


def test_expired_entry_still_present_resolves_to_none(sessions):
    token = sessions.create(1)
    sessions.get(token).expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    assert sessions.get(token) is not None
    assert sessions.resolve(token) is None


def test_purge_expired_drops_dead_sessions():
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(minutes=1), clock=clock)
    old = store.create(1)
    clock.now += timedelta(minutes=2)
    fresh = store.create(2)  # create purges opportunistically
    assert store.get(old) is None
    assert store.resolve(fresh) == 2
    assert store.count() == 1
    clock.now += timedelta(minutes=2)
    assert store.purge_expired() == 1
    assert store.count() == 0


def test_user_can_hold_several_sessions(sessions):
    a = sessions.create(1)
    b = sessions.create(1)
    assert a != b
    sessions.destroy(a)
    assert sessions.resolve(b) == 1


def test_concurrent_create_and_destroy(sessions):
    created = []
    lock = threading.Lock()

    def worker(uid):
        for _ in range(200):
            t = sessions.create(uid)
            with lock:
                created.append(t)
            sessions.destroy(t)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(created)) == 8 * 200
    assert sessions.count() == 0


def test_repr_hides_token(sessions):
    token = sessions.create(1)
    assert token not in repr(sessions.get(token))


# ------------------ Cookie codec ------------------


def test_signed_cookie_round_trip():
    signed = sign_token("abc")
    assert signed != "abc"
    assert unsign_token(signed) == "abc"


def test_tampered_cookie_is_rejected():
    signed = sign_token("abc")
    assert unsign_token(signed[:-2] + "xx") is None
    assert unsign_token("") is None
    assert unsign_token("abc") is None


def test_cookie_signed_with_other_secret_is_rejected(monkeypatch):
    signed = sign_token("abc")
    monkeypatch.setenv("POSTGATE_SECRET_KEY", "another-secret")
    assert unsign_token(signed) is None


def test_production_requires_secret(monkeypatch):
    monkeypatch.setenv("POSTGATE_ENV", "production")
    monkeypatch.delenv("POSTGATE_SECRET_KEY", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        sign_token("abc")


def test_development_falls_back_to_dev_secret(monkeypatch):
    monkeypatch.delenv("POSTGATE_SECRET_KEY", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)
    assert unsign_token(sign_token("abc")) == "abc"


def test_count_ignores_expired_entries_not_yet_purged():
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(minutes=1), clock=clock)
    token = store.create(1)
    assert store.count() == 1
    clock.now += timedelta(minutes=2)
    assert store.count() == 0
    # still stored until the next purge
    assert store.get(token) is not None
