"""
Pure statistics over numeric series.
"""
import math
from typing import Dict, List, Optional, Sequence

from apps.core.exceptions import InvalidInput

TREND_CHANGE_PERCENT = 5
REGRESSION_SLOPE_THRESHOLD = 0.1


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def calculate_trend(values: Sequence[float]) -> str:
    """
    Compare the mean of the second half of a series to the first half.

    Returns:
        'increasing' above +5%, 'decreasing' below -5%, otherwise 'stable'.
        Series shorter than two points, or with a zero first-half mean, are stable.
    """
    values = [v for v in values if v is not None]
    if len(values) < 2:
        return 'stable'

    middle = len(values) // 2
    first = _mean(values[:middle])
    second = _mean(values[middle:])

    if first == 0:
        return 'stable'

    change = (second - first) / abs(first) * 100
    if change > TREND_CHANGE_PERCENT:
        return 'increasing'
    if change < -TREND_CHANGE_PERCENT:
        return 'decreasing'
    return 'stable'


def regression_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    n = len(values)
    if n < 2:
        return 0.0

    x_mean = (n - 1) / 2
    y_mean = _mean(values)

    numerator = sum((i - x_mean) * (v - y_mean) for i, v in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(n))
    return numerator / denominator


def calculate_regression_trend(values: Sequence[float]) -> Dict:
    """
    Trend from the regression slope.

    Returns:
        {direction, strength, slope}; direction flips at a slope of +/-0.1 and
        strength is the absolute slope capped at 1
    """
    values = [v for v in values if v is not None]
    if len(values) < 2:
        return {'direction': 'stable', 'strength': 0, 'slope': 0}

    slope = regression_slope(values)

    direction = 'stable'
    if slope > REGRESSION_SLOPE_THRESHOLD:
        direction = 'increasing'
    elif slope < -REGRESSION_SLOPE_THRESHOLD:
        direction = 'decreasing'

    return {
        'direction': direction,
        'strength': round(min(abs(slope), 1), 2),
        'slope': round(slope, 3),
    }


def calculate_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient, rounded to 3 decimals.

    Raises:
        InvalidInput: if the series differ in length
    """
    if len(x) != len(y):
        raise InvalidInput(f"Series lengths differ ({len(x)} vs {len(y)})")

    n = len(x)
    if n < 2:
        return 0.0

    x_mean = _mean(x)
    y_mean = _mean(y)

    covariance = sum((a - x_mean) * (b - y_mean) for a, b in zip(x, y))
    x_var = sum((a - x_mean) ** 2 for a in x)
    y_var = sum((b - y_mean) ** 2 for b in y)

    denominator = math.sqrt(x_var * y_var)
    if denominator == 0:
        return 0.0

    r = covariance / denominator
    return round(max(-1.0, min(1.0, r)), 3)


def correlation_strength(r: float) -> str:
    magnitude = abs(r)
    if magnitude >= 0.7:
        return 'strong'
    if magnitude >= 0.4:
        return 'moderate'
    if magnitude >= 0.2:
        return 'weak'
    return 'very weak'


def correlation_direction(r: float) -> str:
    if r > 0:
        return 'positive'
    if r < 0:
        return 'negative'
    return 'none'


def summarize(values: Sequence[Optional[float]]) -> Dict:
    """Average (1 dp), min, max and count of the present values."""
    present: List[float] = [v for v in values if v is not None]
    if not present:
        return {'average': None, 'min': None, 'max': None, 'count': 0}

    return {
        'average': round(_mean(present), 1),
        'min': min(present),
        'max': max(present),
        'count': len(present),
    }
