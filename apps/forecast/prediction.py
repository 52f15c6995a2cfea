"""
Simple statistical forecasting and forecast scoring.
"""
import logging
import math
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from django.conf import settings
from django.utils import timezone

from apps.analytics.statistics import regression_slope
from apps.core.utils import calculate_aqi_from_pm25, round_to

logger = logging.getLogger(__name__)

MIN_HISTORY_DAYS = 7
HISTORY_WINDOW = 30


def _value(row, name):
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def _row_date(row):
    value = _value(row, 'date')
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    if isinstance(value, datetime):
        value = value.date()
    return value


def weighted_moving_average(values: Sequence[float], days_ahead: int) -> Optional[float]:
    """
    Linearly weighted mean (oldest weight 1, newest weight n) nudged by half
    the regression slope per day ahead.
    """
    if not values:
        return None

    weights = range(1, len(values) + 1)
    average = sum(v * w for v, w in zip(values, weights)) / sum(weights)
    return average + regression_slope(values) * days_ahead * 0.5


def generate_simple_prediction(history: Sequence, days_ahead: int = 7,
                               start_date: Optional[date] = None) -> List[Dict]:
    """
    Predict the next ``days_ahead`` days from daily history.

    Args:
        history: Daily aggregates (model rows or dicts) with ``date``,
            ``avg_temperature``, ``avg_humidity`` and ``avg_pm25``
        days_ahead: Number of days to predict
        start_date: Day before the first prediction (defaults to today)

    Returns:
        One dict per day with ``date``, ``temperature``, ``humidity``,
        ``pm25``, ``aqi`` and ``confidence``; empty with fewer than 7 days
    """
    if not history or len(history) < MIN_HISTORY_DAYS:
        logger.warning("Insufficient historical data for prediction")
        return []

    recent = sorted(history, key=_row_date)[-HISTORY_WINDOW:]
    start_date = start_date or timezone.localdate()

    series = {
        name: [_value(row, name) for row in recent if _value(row, name) is not None]
        for name in ('avg_temperature', 'avg_humidity', 'avg_pm25')
    }

    predictions = []
    for i in range(1, days_ahead + 1):
        pm25 = weighted_moving_average(series['avg_pm25'], i)
        predictions.append({
            'date': start_date + timedelta(days=i),
            'temperature': round_to(weighted_moving_average(series['avg_temperature'], i), 1),
            'humidity': round_to(weighted_moving_average(series['avg_humidity'], i), 0),
            'pm25': round_to(pm25, 1),
            'aqi': calculate_aqi_from_pm25(pm25) if pm25 is not None else None,
            'confidence': round(max(0.5, 1 - i * 0.05), 2),
        })

    logger.debug(f"Generated {len(predictions)} predictions")
    return predictions


def evaluate_forecast_accuracy(predicted: Sequence[float], actual: Sequence[float]) -> Optional[Dict]:
    """
    Error metrics for paired predicted/actual values.

    MAPE skips pairs whose actual value is 0. When the actuals have no
    variance R² is 1.0 for a perfect fit and 0.0 otherwise.

    Returns:
        {mae, rmse, mape, r_squared, sample_size, accuracy} or None for empty
        or mismatched input
    """
    if not predicted or not actual or len(predicted) != len(actual):
        logger.warning("Invalid data for accuracy evaluation")
        return None

    n = len(predicted)
    errors = [p - a for p, a in zip(predicted, actual)]

    mae = sum(abs(e) for e in errors) / n
    residual_ss = sum(e ** 2 for e in errors)
    rmse = math.sqrt(residual_ss / n)

    percentages = [abs(e / a) * 100 for e, a in zip(errors, actual) if a != 0]
    mape = sum(percentages) / len(percentages) if percentages else 0.0

    actual_mean = sum(actual) / n
    total_ss = sum((a - actual_mean) ** 2 for a in actual)
    if total_ss == 0:
        r_squared = 1.0 if residual_ss == 0 else 0.0
    else:
        r_squared = 1 - residual_ss / total_ss

    metrics = {
        'mae': round(mae, 2),
        'rmse': round(rmse, 2),
        'mape': round(mape, 2),
        'r_squared': round(r_squared, 3),
        'sample_size': n,
        'accuracy': round(max(0.0, 100 - mape), 1),
    }

    logger.debug(f"Forecast accuracy: MAE={metrics['mae']}, RMSE={metrics['rmse']}, R²={metrics['r_squared']}")
    return metrics


def select_best_forecast(candidates: Sequence[Dict], actual: Optional[Sequence] = None) -> Optional[Dict]:
    """
    Choose one forecast among several.

    Args:
        candidates: Dicts with ``source`` and ``predictions`` (each carrying
            ``temperature``)
        actual: Daily aggregates aligned with the predictions; when given,
            the candidate with the lowest RMSE on temperature wins

    Returns:
        The chosen candidate (with ``accuracy`` when scored), or None
    """
    if not candidates:
        logger.warning("No forecasts to select from")
        return None

    if len(candidates) == 1:
        return candidates[0]

    if actual:
        scored = []
        for candidate in candidates:
            predicted = [p.get('temperature') for p in candidate.get('predictions', [])]
            observed = [_value(row, 'avg_temperature') for row in actual[:len(predicted)]]
            pairs = [(p, a) for p, a in zip(predicted, observed) if p is not None and a is not None]
            accuracy = evaluate_forecast_accuracy([p for p, _ in pairs], [a for _, a in pairs])
            scored.append({**candidate, 'accuracy': accuracy})

        scored.sort(key=lambda c: c['accuracy']['rmse'] if c['accuracy'] else math.inf)
        best = scored[0]
        logger.info(f"Best forecast: {best.get('source')} (RMSE: {best['accuracy'] and best['accuracy']['rmse']})")
        return best

    priority = settings.URBAN_CLIMATE_SETTINGS.get('FORECAST_SOURCE_PRIORITY', {})
    best = sorted(candidates, key=lambda c: priority.get(c.get('source'), 99))[0]
    logger.info(f"Selected forecast: {best.get('source')} (by priority)")
    return best
