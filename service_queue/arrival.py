from __future__ import annotations

"""Arrival models for simulated kiosk traffic.

Customers arrive as a Poisson process with rate λ (tickets/second): the
inter-arrival times are i.i.d. Exponential(λ). Each arrival then picks a
service type according to configured weights.
"""

import random
from typing import Mapping


def sample_exponential_interarrival(*, rate_per_sec: float, rng: random.Random | None = None) -> float:
    """Sample the next inter-arrival time (seconds) for a Poisson process.

    Args:
        rate_per_sec: λ, the arrival rate in tickets/second. Must be > 0.
        rng: optional RNG (useful for deterministic tests).
    """
    if rate_per_sec <= 0:
        raise ValueError("rate_per_sec must be > 0")

    r = rng or random
    return float(r.expovariate(rate_per_sec))


def parse_weights(text: str) -> dict[str, float]:
    """Parse "general=6,express=3,vip=1" into a weight mapping."""
    weights: dict[str, float] = {}
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, value = part.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"bad weight entry {part!r}, expected name=weight")
        weights[name.strip()] = float(value)
    if not weights:
        raise ValueError("no service type weights given")
    return weights


def choose_service_type(weights: Mapping[str, float], *, rng: random.Random | None = None) -> str:
    if not weights or any(w < 0 for w in weights.values()) or sum(weights.values()) <= 0:
        raise ValueError("weights must be non-negative with a positive total")
    r = rng or random
    names = list(weights)
    return r.choices(names, weights=[weights[n] for n in names], k=1)[0]
