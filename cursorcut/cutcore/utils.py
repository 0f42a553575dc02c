"""Shared utilities used by multiple modules."""


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into ``[lo, hi]``."""
    return max(lo, min(hi, value))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def smoothstep(u: float) -> float:
    """Cubic Hermite ease-in-out — f(u) = 3u² - 2u³.

    *u* is clamped to ``[0, 1]`` first.  Zero slope at both ends, so
    speed ramps, zoom transitions, cut bridges and click ripples all
    start and finish without a visible jolt.
    """
    u = clamp(u, 0.0, 1.0)
    return u * u * (3.0 - 2.0 * u)


def fmt_time(seconds: float) -> str:
    """Format seconds as m:ss."""
    s = int(seconds)
    m = s // 60
    return f"{m}:{s % 60:02d}"
