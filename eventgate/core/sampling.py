"""Sampling evaluator — decides whether a unit of work proceeds.

Two flavours:

* ``should_sample`` — uniform random, for volume reduction where it does not
  matter which individual events survive.
* ``should_sample_deterministic`` — hashes a key (user id, session id, event
  name) so that the same key always gets the same decision for a fixed
  rate.  Sampling by user therefore never flickers a user in and out.

Rates are clamped at the edges: ``rate <= 0`` is always False and
``rate >= 1`` is always True.  NaN and infinities are rejected by rule
validation and never reach these functions.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from eventgate.core.hasher import stable_bucket, stable_fraction


def should_sample(rate: float, rng: random.Random | None = None) -> bool:
    """Uniform-random sampling decision for *rate*.

    Parameters
    ----------
    rate:
        Probability in ``[0, 1]`` that the call returns True.
    rng:
        Optional ``random.Random`` instance, mainly for reproducible tests.
        Defaults to the module-level generator.
    """
    if rate >= 1.0:
        return True
    if rate <= 0.0:
        return False
    draw = rng.random() if rng is not None else random.random()
    return draw < rate


def should_sample_deterministic(key: str | None, rate: float) -> bool:
    """Deterministic sampling decision keyed on *key*.

    The key is hashed to a stable value in ``[0, 1)`` and compared against
    *rate*.  An empty or absent key falls back to :func:`should_sample`.
    """
    if rate >= 1.0:
        return True
    if rate <= 0.0:
        return False
    if not key:
        return should_sample(rate)
    return stable_fraction(key) < rate


def should_sample_by_user(user_id: str | None, rate: float) -> bool:
    """Sample consistently per user."""
    return should_sample_deterministic(user_id, rate)


def should_sample_by_session(session_id: str | None, rate: float) -> bool:
    """Sample consistently per session."""
    return should_sample_deterministic(session_id, rate)


def should_sample_by_event_name(event_name: str, rate: float) -> bool:
    """Sample a whole event kind in or out, keyed on its name."""
    return should_sample_deterministic(event_name, rate)


def sampling_bucket(identifier: str, bucket_count: int) -> int:
    """Assign *identifier* to a stable bucket, e.g. for A/B splits."""
    return stable_bucket(identifier, bucket_count)


def should_sample_for_bucket(
    identifier: str, bucket_count: int, target_buckets: Iterable[int]
) -> bool:
    """Return True when *identifier* falls into one of *target_buckets*."""
    return sampling_bucket(identifier, bucket_count) in set(target_buckets)


def validate_sample_rate(rate: float) -> list[str]:
    """Return a list of problems with *rate* — empty means valid."""
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        return [f"Sample rate must be a number, got {type(rate).__name__}"]
    if math.isnan(rate) or math.isinf(rate):
        return [f"Sample rate must be finite, got {rate}"]
    if rate < 0.0:
        return [f"Sample rate cannot be negative: {rate}"]
    if rate > 1.0:
        return [f"Sample rate cannot exceed 1.0: {rate}"]
    return []


def percentage_to_rate(percentage: float) -> float:
    """Convert a percentage (0-100) to a clamped sample rate."""
    return min(max(percentage / 100.0, 0.0), 1.0)


def rate_to_percentage(rate: float) -> float:
    """Convert a sample rate to a clamped percentage."""
    return min(max(rate * 100.0, 0.0), 100.0)


class SamplingStats(BaseModel):
    """Aggregate outcome of a series of sampling decisions."""

    model_config = ConfigDict(frozen=True)

    total_events: int = 0
    sampled_events: int = 0
    actual_sample_rate: float = 0.0

    @property
    def dropped_events(self) -> int:
        return self.total_events - self.sampled_events

    @property
    def drop_rate(self) -> float:
        if self.total_events == 0:
            return 0.0
        return 1.0 - self.actual_sample_rate

    def to_map(self) -> dict[str, float | int]:
        return {
            "total_events": self.total_events,
            "sampled_events": self.sampled_events,
            "dropped_events": self.dropped_events,
            "actual_sample_rate": self.actual_sample_rate,
            "drop_rate": self.drop_rate,
        }


def calculate_stats(decisions: Iterable[bool]) -> SamplingStats:
    """Summarize a sequence of sampling decisions."""
    results = list(decisions)
    if not results:
        return SamplingStats()
    sampled = sum(1 for kept in results if kept)
    return SamplingStats(
        total_events=len(results),
        sampled_events=sampled,
        actual_sample_rate=sampled / len(results),
    )
