import random

from msoclient.backoff import BackoffPolicy, compute_delay


def test_delay_stays_within_bounds():
    rng = random.Random(7)
    for attempt in range(0, 25):
        for _ in range(20):
            delay = compute_delay(attempt, 4, 60, 3.0, uniform=rng.uniform)
            assert 4 <= delay <= 60


def test_delay_bounds_hold_at_jitter_extremes():
    for attempt in range(0, 10):
        low = compute_delay(attempt, 2, 30, 2.0, uniform=lambda a, b: a)
        high = compute_delay(attempt, 2, 30, 2.0, uniform=lambda a, b: b)
        assert 2 <= low <= high <= 30


def test_delay_grows_until_clamped():
    mid = lambda a, b: (a + b) / 2
    delays = [compute_delay(attempt, 4, 60, 3.0, uniform=mid) for attempt in range(0, 8)]
    assert delays == sorted(delays)
    assert delays[-1] == 4 + 0.75 * (60 - 4)


def test_attempt_zero_returns_min_delay():
    assert compute_delay(0, 4, 60, 3.0, uniform=lambda a, b: b) == 4


def test_exact_value_with_fixed_jitter():
    # raw = 1 * 2**2 = 4, jitter 0.5 of the span above min
    assert compute_delay(2, 1, 10, 2.0, uniform=lambda a, b: 0.5) == 2.5


def test_huge_attempt_is_clamped_to_max():
    assert compute_delay(5000, 4, 60, 3.0, uniform=lambda a, b: b) == 60


def test_policy_budget():
    policy = BackoffPolicy(max_retries=2, min_delay=1, max_delay=10, factor=2)
    assert policy.allows(1)
    assert policy.allows(2)
    assert not policy.allows(3)
    assert policy.delay(1, uniform=lambda a, b: b) == 2


def test_default_policy_never_retries():
    policy = BackoffPolicy()
    assert not policy.allows(1)
    assert (policy.min_delay, policy.max_delay, policy.factor) == (4.0, 60.0, 3.0)
