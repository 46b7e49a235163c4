import threading

import pytest

from authgate.core.security import create_access_token
from authgate.db import InMemoryDB
from authgate.services.auth_service import AuthService, SessionExpiredError
from authgate.services.sessions import SessionRegistry

from conftest import FakeClock

THREADS = 8
ROUNDS = 300


def run_threads(targets):
    errors = []

    def wrap(fn):
        def runner():
            try:
                fn()
            except Exception as e:  # noqa: BLE001
                errors.append(e)
        return runner

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


def test_concurrent_creates_are_all_recorded():
    reg = SessionRegistry(clock=FakeClock())

    def creator(n):
        def go():
            for i in range(ROUNDS):
                reg.create_session(f"tok-{n}-{i}", {"id": n, "emailid": f"{n}@x.com", "username": str(n)})
        return go

    errors = run_threads([creator(n) for n in range(THREADS)])
    assert not errors

    stats = reg.stats()
    assert stats.active_sessions_count == stats.total_sessions_count == THREADS * ROUNDS
    assert reg.logout_all_user_sessions(0).count == ROUNDS


def test_activity_updates_racing_sweep_and_logout():
    clock = FakeClock()
    reg = SessionRegistry(clock=clock)
    kept = [f"keep-{i}" for i in range(20)]
    dropped = [f"drop-{i}" for i in range(20)]
    for tok in kept:
        reg.create_session(tok, {"id": 1, "emailid": "k@x.com", "username": "K"})
    for tok in dropped:
        reg.create_session(tok, {"id": 2, "emailid": "d@x.com", "username": "D"})

    lost_updates = []

    def updater():
        for _ in range(ROUNDS):
            for tok in kept:
                if not reg.update_activity(tok):
                    lost_updates.append(tok)

    def sweeper():
        for _ in range(ROUNDS):
            reg.sweep()

    def logouts():
        for tok in dropped:
            reg.logout(tok)

    errors = run_threads([updater, updater, sweeper, logouts, lambda: reg.list_active_sessions()])
    assert not errors
    # The clock never moved, so nothing was idle and no kept session may vanish
    assert not lost_updates
    assert all(reg.validate_session(tok) for tok in kept)
    assert not any(reg.validate_session(tok) for tok in dropped)

    stats = reg.stats()
    assert stats.active_sessions_count == stats.total_sessions_count == len(reg.list_active_sessions()) == 20


def test_concurrent_logout_succeeds_once():
    reg = SessionRegistry(clock=FakeClock())
    reg.create_session("tok-A", {"id": 1, "emailid": "a@x.com", "username": "A"})
    results = []
    lock = threading.Lock()

    def attempt():
        r = reg.logout("tok-A")
        with lock:
            results.append(r.success)

    errors = run_threads([attempt] * THREADS)
    assert not errors
    assert results.count(True) == 1
    assert results.count(False) == THREADS - 1


def _gate_with_removal_after_validate(remove):
    reg = SessionRegistry(clock=FakeClock())
    auth = AuthService(InMemoryDB(seed_users=False), reg)
    token, _ = create_access_token("1")
    reg.create_session(token, {"id": 1, "emailid": "a@x.com", "username": "A"})

    real_validate = reg.validate_session

    def validate_then_remove(tok):
        session = real_validate(tok)
        remove(reg, tok)
        return session

    reg.validate_session = validate_then_remove
    return auth, reg, token


@pytest.mark.parametrize(
    "remove",
    [
        lambda reg, tok: reg.logout(tok),
        lambda reg, tok: reg.logout_all_user_sessions(1),
        lambda reg, tok: reg.clear(),
    ],
)
def test_gate_rejects_session_removed_mid_request(remove):
    auth, reg, token = _gate_with_removal_after_validate(remove)

    with pytest.raises(SessionExpiredError):
        auth.authorize(token)
    assert reg.get_session_by_token(token) is None
    assert reg.stats().total_sessions_count == 0


def test_gate_rejects_session_swept_mid_request():
    def expire_and_sweep(reg, tok):
        reg._clock.advance(minutes=16)
        reg.sweep()

    auth, reg, token = _gate_with_removal_after_validate(expire_and_sweep)

    with pytest.raises(SessionExpiredError):
        auth.authorize(token)
    assert reg.get_session_by_token(token) is None
