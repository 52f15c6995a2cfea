"""
Helpers over ordered {date, value} series.
"""
import math
from typing import Dict, List, Optional, Sequence

MIN_ANOMALY_POINTS = 10


def _mean_std(values: Sequence[float]):
    mean = sum(values) / len(values)
    return mean, math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def detect_anomalies(points: Sequence[Dict], threshold: float = 3) -> List[Dict]:
    """
    Flag points more than ``threshold`` population standard deviations from
    the rest of the series.

    Each point is scored against the mean and standard deviation of the
    other present values, so a single outlier cannot mask itself by
    inflating the spread it is measured against. When those other values
    are all identical the whole-series mean and deviation are used instead.

    Args:
        points: Ordered dicts with at least ``value``; None values are ignored
        threshold: Z-score cut-off (strictly greater is anomalous)

    Returns:
        Copies of the anomalous points with their ``index``, ``z_score`` and
        signed ``deviation``.
        Fewer than 10 points, or a flat series, yields no anomalies.
    """
    present = [(index, point['value']) for index, point in enumerate(points) if point.get('value') is not None]
    if len(present) < MIN_ANOMALY_POINTS:
        return []

    values = [value for _, value in present]
    series_mean, series_std = _mean_std(values)
    if series_std == 0:
        return []

    anomalies = []
    for position, (index, value) in enumerate(present):
        others = values[:position] + values[position + 1:]
        mean, std = _mean_std(others)
        deviation = value - mean

        if std == 0:
            deviation = value - series_mean
            std = series_std

        # Rounded so a z landing exactly on the threshold is not flagged by float error
        z_score = round(deviation / std, 6)

        if abs(z_score) > threshold:
            anomalies.append({
                **points[index],
                'index': index,
                'z_score': round(z_score, 2),
                'deviation': round(deviation, 2),
            })

    return anomalies


def fill_missing_data(points: Sequence[Dict]) -> List[Dict]:
    """
    Linearly interpolate None values lying between two present values.

    Leading and trailing gaps stay None. Filled points carry
    ``interpolated=True``. The input is not modified.
    """
    filled = [dict(point) for point in points]
    present = [i for i, point in enumerate(filled) if point.get('value') is not None]

    for left, right in zip(present, present[1:]):
        gap = right - left
        if gap <= 1:
            continue

        start = filled[left]['value']
        step = (filled[right]['value'] - start) / gap
        for offset in range(1, gap):
            filled[left + offset]['value'] = round(start + step * offset, 2)
            filled[left + offset]['interpolated'] = True

    return filled


def calculate_moving_average(values: Sequence[Optional[float]], window: int = 7) -> List[Optional[float]]:
    """
    Trailing mean over ``window`` positions.

    Positions before the window fills, or whose window has no present value,
    are None.
    """
    if window < 1:
        raise ValueError("window must be at least 1")

    averages = []
    for index in range(len(values)):
        if index + 1 < window:
            averages.append(None)
            continue
        window_values = [v for v in values[index + 1 - window:index + 1] if v is not None]
        averages.append(round(sum(window_values) / len(window_values), 2) if window_values else None)

    return averages
