"""Power-curve easing for velocity shaping.

Easing functions map a normalised progress value *t* in [0, 1] to an eased
output. The crescendo pattern engine uses :func:`power_curve` to turn a
note's position within the pattern into a velocity:

    power_curve(0.5, 20, 120, 2.0)   # → 45.0  (slow start, fast finish)
    power_curve(0.5, 20, 120, 1.0)   # → 70.0  (linear)
    power_curve(0.5, 20, 120, -1.0)  # → 70.0  (reverse linear: 120 → 20)

Exponent 1 is linear, 2 quadratic, 3 cubic. A negative exponent runs the
same curve from *high* down to *low*.
"""

from __future__ import annotations


def power_ease (t: float, exponent: float) -> float:
    """Raise *t* to *exponent*; the sign of *exponent* is ignored."""
    return t ** abs(exponent)


def power_curve (value: float, low: float, high: float, exponent: float) -> float:
    """Map *value* in [0, 1] onto [low, high] along a power curve.

    With a non-negative exponent the curve starts at *low* and ends at
    *high*. With a negative exponent the ends are swapped, so the curve
    starts at *high* and ends at *low*.
    """

    if exponent >= 0.0:
        return low + (high - low) * power_ease(value, exponent)

    return high + (low - high) * power_ease(value, exponent)
