"""Simplified aspect ratio labels such as "4:3", "16:9" or "≈21:9"."""

import math

# Largest numerator/denominator shown in a label
MAX_COMPONENT = 21


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


def approximate_ratio(width: int, height: int) -> str:
    """
    Describe ``width x height`` as a compact ratio label.

    Returns the exact reduced ratio when both parts are at most
    ``MAX_COMPONENT``, otherwise the closest ratio with parts in
    ``[1, MAX_COMPONENT]`` prefixed with "≈". Non-positive dimensions give
    "unknown".
    """
    if width <= 0 or height <= 0:
        return "unknown"

    divisor = math.gcd(width, height)
    reduced_width = width // divisor
    reduced_height = height // divisor

    if reduced_width <= MAX_COMPONENT and reduced_height <= MAX_COMPONENT:
        return f"{reduced_width}:{reduced_height}"

    target = width / height
    best = (reduced_width, reduced_height)
    smallest_delta = math.inf

    for h in range(1, MAX_COMPONENT + 1):
        w = min(MAX_COMPONENT, max(1, round_half_up(target * h)))
        delta = abs(w / h - target)
        # strict comparison keeps the first (smallest h) pair on ties
        if delta < smallest_delta:
            smallest_delta = delta
            best = (w, h)

    return f"≈{best[0]}:{best[1]}"
