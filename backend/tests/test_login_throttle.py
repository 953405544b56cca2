# Overview: Pytest coverage for login throttling.

from datetime import datetime, timedelta

import pytest

from posail.services.login_throttle_service import LoginThrottle, throttle_key


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def throttle(clock):
    return LoginThrottle(
        max_failures=5,
        window=timedelta(minutes=10),
        lockout=timedelta(minutes=15),
        clock=clock,
    )


KEY = throttle_key("10.0.0.1", "cajero@posail.test")


def test_unknown_key_is_clean(throttle):
    state = throttle.get_state(KEY)
    assert state.failures == 0
    assert not state.locked


def test_locks_on_fifth_failure(throttle):
    for _ in range(4):
        assert not throttle.record_failure(KEY).locked
    state = throttle.record_failure(KEY)
    assert state.locked
    assert state.retry_after_seconds == 15 * 60


def test_lockout_runs_from_the_fifth_failure(throttle, clock):
    for _ in range(5):
        clock.advance(minutes=1)
        throttle.record_failure(KEY)

    clock.advance(minutes=14, seconds=59)
    assert throttle.get_state(KEY).locked

    clock.advance(seconds=1)
    assert not throttle.get_state(KEY).locked


def test_failures_while_locked_do_not_extend_lockout(throttle, clock):
    for _ in range(5):
        throttle.record_failure(KEY)
    locked_until = throttle.get_state(KEY).locked_until

    clock.advance(minutes=5)
    state = throttle.record_failure(KEY)
    assert state.locked_until == locked_until


def test_window_expiry_resets_counter(throttle, clock):
    for _ in range(4):
        throttle.record_failure(KEY)

    clock.advance(minutes=10, seconds=1)
    state = throttle.record_failure(KEY)
    assert state.failures == 1
    assert not state.locked


def test_clear_forgets_the_key(throttle):
    for _ in range(3):
        throttle.record_failure(KEY)
    throttle.clear(KEY)
    assert throttle.get_state(KEY).failures == 0


def test_keys_are_independent(throttle):
    other_ip = throttle_key("10.0.0.2", "cajero@posail.test")
    other_email = throttle_key("10.0.0.1", "admin@posail.test")
    for _ in range(5):
        throttle.record_failure(KEY)

    assert throttle.get_state(KEY).locked
    assert not throttle.get_state(other_ip).locked
    assert not throttle.get_state(other_email).locked


def test_reset_clears_everything(throttle):
    for _ in range(5):
        throttle.record_failure(KEY)
    throttle.reset()
    assert not throttle.get_state(KEY).locked


def test_missing_ip_still_keys_by_email():
    assert throttle_key(None, "a@b.c") == ("unknown", "a@b.c")
