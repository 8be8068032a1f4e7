from __future__ import annotations

# Simulated service time for counter agents.
#
# A service type advertises an average processing time in minutes. Demos don't
# want to wait ten real minutes per customer, so agents scale it down:
#   service_time_seconds = average_minutes * 60 * time_scale
# With time_scale=0.01 a 10-minute service takes 6 seconds.
#
# Optional jitter draws the actual duration from an exponential distribution
# with that mean, which is the usual assumption for service times.

import random


def compute_service_time_seconds(
    *,
    average_minutes: float,
    time_scale: float,
    jitter: bool = False,
    rng: random.Random | None = None,
) -> float:
    """How long a counter agent should spend on one ticket.

    Args:
        average_minutes: the service type's average processing time (> 0).
        time_scale: real seconds per simulated second (>= 0).
        jitter: sample from Exponential(mean) instead of using the mean.
        rng: optional RNG (useful for deterministic tests).

    Returns:
        Non-negative float.
    """
    if average_minutes <= 0:
        raise ValueError("average_minutes must be > 0")
    if time_scale < 0:
        raise ValueError("time_scale must be >= 0")

    mean = float(average_minutes * 60.0 * time_scale)
    if not jitter or mean == 0.0:
        return mean

    r = rng or random
    return float(r.expovariate(1.0 / mean))
