"""
Adaptive thresholds for the alert detectors.

Thresholds scale with audience size: a busy channel needs a larger
deviation before a surge is worth calling out, so most thresholds grow with
``log1p(unique_chatters - 5)``. Before baselines are ready the detectors use
fixed, more conservative values.

Functions:
    audience_scale: Log-scaled audience factor
    surge_z_threshold: Z-score a velocity surge must reach
    surge_percent_threshold: Percent delta a velocity surge must reach
    strong_surge_z_threshold: Z-score of a strong surge
    min_unique_for_surge: Minimum chatters before surges are considered
    newcomer_ratio_threshold: Newcomer share that counts as a wave
    dynamic_cooldown: Cooldown shortened by intensity
    alert_budget: Max alerts emitted per cycle
"""

import math
from typing import Optional

SURGE_Z_READY = 1.2
SURGE_Z_WARMUP = 1.6
SURGE_Z_SCALE = 0.25
SURGE_PCT_READY = 30.0
SURGE_PCT_WARMUP = 45.0
SURGE_PCT_SCALE = 8.0
STRONG_SURGE_Z_MARGIN = 0.8

NEWCOMER_RATIO_READY = 0.12
NEWCOMER_RATIO_WARMUP = 0.22
NEWCOMER_RATIO_SCALE = 0.015
NEWCOMER_RATIO_MIN = 0.12
NEWCOMER_RATIO_MAX = 0.35

INTENSITY_MIN = 0.5
INTENSITY_MAX = 4.0


def audience_scale(unique_chatters: int) -> float:
    """Return ``log1p(max(unique_chatters - 5, 0))``."""
    return math.log1p(max(unique_chatters - 5, 0))


def surge_z_threshold(unique_chatters: int, ready: bool) -> float:
    base = SURGE_Z_READY if ready else SURGE_Z_WARMUP
    return base + audience_scale(unique_chatters) * SURGE_Z_SCALE


def surge_percent_threshold(unique_chatters: int, ready: bool) -> float:
    base = SURGE_PCT_READY if ready else SURGE_PCT_WARMUP
    return base + audience_scale(unique_chatters) * SURGE_PCT_SCALE


def strong_surge_z_threshold(unique_chatters: int, ready: bool) -> float:
    return surge_z_threshold(unique_chatters, ready) + STRONG_SURGE_Z_MARGIN


def min_unique_for_surge(ready: bool) -> int:
    return 3 if ready else 5


def newcomer_ratio_threshold(unique_chatters: int, ready: bool) -> float:
    """
    Share of newcomers among unique chatters that counts as a wave.

    Args:
        unique_chatters: Distinct chatters in the retention window.
        ready: Whether the newcomer baseline is ready.

    Returns:
        float: Threshold clamped to [0.12, 0.35].
    """
    base = NEWCOMER_RATIO_READY if ready else NEWCOMER_RATIO_WARMUP
    value = base + audience_scale(unique_chatters) * NEWCOMER_RATIO_SCALE
    return min(max(value, NEWCOMER_RATIO_MIN), NEWCOMER_RATIO_MAX)


def dynamic_cooldown(
    base_seconds: float,
    intensity: Optional[float],
    min_fraction: float = 0.3,
) -> float:
    """
    Shorten a cooldown for more intense events.

    The intensity is clamped to [0.5, 4] and divides the base; the result
    never drops below ``base_seconds * min_fraction``. A missing, non-finite
    or non-positive intensity leaves the base unchanged.

    Args:
        base_seconds: Cooldown at zero intensity.
        intensity: Event intensity (z-score or ratio multiple).
        min_fraction: Floor as a fraction of the base.

    Returns:
        float: Cooldown in seconds.

    Example:
        >>> dynamic_cooldown(30.0, 2.0)
        10.0
        >>> dynamic_cooldown(30.0, None)
        30.0
    """
    if intensity is None or not math.isfinite(intensity) or intensity <= 0:
        return base_seconds
    bounded = min(max(intensity, INTENSITY_MIN), INTENSITY_MAX)
    return max(base_seconds / (1.0 + bounded), base_seconds * min_fraction)


def alert_budget(
    unique_chatters: int,
    base: int = 5,
    minimum: int = 3,
    maximum: int = 8,
) -> int:
    """
    Max alerts emitted in one cycle.

    Returns:
        int: ``clamp(base + floor(log2(max(unique, 1))), minimum, maximum)``.
    """
    extra = math.floor(math.log2(max(unique_chatters, 1)))
    return max(minimum, min(maximum, base + extra))
