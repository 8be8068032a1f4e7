import random

import pytest

from service_queue.service_time import compute_service_time_seconds


def test_compute_service_time_seconds():
    assert compute_service_time_seconds(average_minutes=10, time_scale=0.01) == pytest.approx(6.0)
    assert compute_service_time_seconds(average_minutes=5, time_scale=0) == 0.0


def test_compute_service_time_seconds_rejects_bad_input():
    with pytest.raises(ValueError):
        compute_service_time_seconds(average_minutes=0, time_scale=1.0)
    with pytest.raises(ValueError):
        compute_service_time_seconds(average_minutes=10, time_scale=-1.0)


def test_jitter_is_deterministic_with_rng():
    a = compute_service_time_seconds(average_minutes=10, time_scale=0.01, jitter=True, rng=random.Random(7))
    b = compute_service_time_seconds(average_minutes=10, time_scale=0.01, jitter=True, rng=random.Random(7))
    assert a == b
    assert a > 0
