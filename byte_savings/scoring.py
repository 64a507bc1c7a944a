"""
Score curve for byte-efficiency opportunities
Maps estimated wasted milliseconds to a score between 0 and 1
"""

import numpy as np

from byte_savings.constants import SCORE_CONTROL_POINTS, SAVINGS_ROUNDING_MS

_CONTROL_MS = np.array([point[0] for point in SCORE_CONTROL_POINTS], dtype=float)
_CONTROL_SCORES = np.array([point[1] for point in SCORE_CONTROL_POINTS], dtype=float)


def score_for_wasted_ms(wasted_ms: float) -> float:
    """
    Score a wasted-time estimate

    Piecewise linear through (0, 1), (300, 0.75), (750, 0.5) and (5000, 0).
    Negative values mean the change would not save time and score 1.

    Args:
        wasted_ms: Estimated savings in milliseconds

    Returns:
        Score in [0, 1]
    """
    if wasted_ms <= 0:
        return 1.0
    score = float(np.interp(wasted_ms, _CONTROL_MS, _CONTROL_SCORES))
    return min(1.0, max(0.0, score))


def round_savings(savings_ms: float) -> float:
    """Floor negative savings at zero and round to the nearest 10 ms"""
    clamped = max(savings_ms, 0)
    return float(np.floor(clamped / SAVINGS_ROUNDING_MS + 0.5) * SAVINGS_ROUNDING_MS)
