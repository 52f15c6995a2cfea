from datetime import date, timedelta

from apps.forecast.prediction import (
    evaluate_forecast_accuracy,
    generate_simple_prediction,
    select_best_forecast,
    weighted_moving_average,
)

START = date(2024, 3, 1)


def history(temperatures, pm25=None):
    rows = []
    for i, temperature in enumerate(temperatures):
        rows.append({
            'date': START + timedelta(days=i),
            'avg_temperature': temperature,
            'avg_humidity': 60,
            'avg_pm25': pm25[i] if pm25 else None,
        })
    return rows


def test_prediction_needs_a_week_of_history():
    assert generate_simple_prediction(history([25] * 6)) == []
    assert generate_simple_prediction([]) == []


def test_prediction_follows_the_trend():
    predictions = generate_simple_prediction(
        history(range(20, 30)), days_ahead=7, start_date=date(2024, 3, 10)
    )

    assert len(predictions) == 7
    assert predictions[0]['date'] == date(2024, 3, 11)
    assert predictions[0]['temperature'] == 26.5
    assert predictions[6]['temperature'] == 29.5
    assert predictions[0]['humidity'] == 60
    assert predictions[0]['pm25'] is None
    assert predictions[0]['aqi'] is None


def test_confidence_never_rises_and_is_floored():
    predictions = generate_simple_prediction(history([25] * 10), days_ahead=12)
    confidences = [p['confidence'] for p in predictions]

    assert confidences[0] == 0.95
    assert all(a >= b for a, b in zip(confidences, confidences[1:]))
    assert min(confidences) == 0.5


def test_prediction_uses_the_latest_thirty_days_in_date_order():
    rows = history([100] * 10 + [20] * 30)
    rows.reverse()

    predictions = generate_simple_prediction(rows, days_ahead=1)

    assert predictions[0]['temperature'] == 20.0


def test_pm25_prediction_carries_aqi():
    predictions = generate_simple_prediction(history([25] * 7, pm25=[12.0] * 7), days_ahead=1)

    assert predictions[0]['pm25'] == 12.0
    assert predictions[0]['aqi'] == 50


def test_weighted_moving_average_of_flat_series():
    assert weighted_moving_average([10, 10, 10], days_ahead=3) == 10
    assert weighted_moving_average([], days_ahead=1) is None


def test_accuracy_of_a_perfect_forecast():
    metrics = evaluate_forecast_accuracy([20, 22, 24], [20, 22, 24])

    assert metrics == {
        'mae': 0,
        'rmse': 0,
        'mape': 0,
        'r_squared': 1.0,
        'sample_size': 3,
        'accuracy': 100.0,
    }


def test_accuracy_metrics():
    metrics = evaluate_forecast_accuracy([22, 18, 30], [20, 20, 30])

    assert metrics['mae'] == 1.33
    assert metrics['rmse'] == 1.63
    assert metrics['mape'] == 6.67
    assert metrics['accuracy'] == 93.3
    assert metrics['r_squared'] == 0.88


def test_accuracy_with_constant_actuals():
    assert evaluate_forecast_accuracy([21, 21], [20, 20])['r_squared'] == 0.0
    assert evaluate_forecast_accuracy([20, 20], [20, 20])['r_squared'] == 1.0


def test_accuracy_skips_zero_actuals_in_mape():
    metrics = evaluate_forecast_accuracy([1, 11], [0, 10])
    assert metrics['mape'] == 10.0


def test_accuracy_rejects_mismatched_input():
    assert evaluate_forecast_accuracy([1, 2], [1]) is None
    assert evaluate_forecast_accuracy([], []) is None


def test_select_best_by_error():
    candidates = [
        {'source': 'OpenMeteo', 'predictions': [{'temperature': 25}, {'temperature': 30}]},
        {'source': 'Historical', 'predictions': [{'temperature': 21}, {'temperature': 22}]},
    ]
    actual = [{'avg_temperature': 20}, {'avg_temperature': 22}]

    best = select_best_forecast(candidates, actual)

    assert best['source'] == 'Historical'
    assert best['accuracy']['rmse'] == 0.71


def test_select_best_by_priority():
    candidates = [
        {'source': 'Historical', 'predictions': []},
        {'source': 'OpenMeteo', 'predictions': []},
    ]

    assert select_best_forecast(candidates)['source'] == 'OpenMeteo'
    assert select_best_forecast([]) is None
