from apps.aggregation.series import (
    calculate_moving_average,
    detect_anomalies,
    fill_missing_data,
)


def series(values):
    return [{'date': f'2024-01-{i + 1:02d}', 'value': v} for i, v in enumerate(values)]


def test_interior_gap_is_interpolated():
    filled = fill_missing_data(series([5, None, None, 11]))

    assert [p['value'] for p in filled] == [5, 7, 9, 11]
    assert [p.get('interpolated', False) for p in filled] == [False, True, True, False]


def test_leading_and_trailing_gaps_are_left_alone():
    filled = fill_missing_data(series([None, 5, 8, None]))

    assert filled[0]['value'] is None
    assert filled[3]['value'] is None
    assert not any(p.get('interpolated') for p in filled)


def test_fill_does_not_mutate_input():
    points = series([1, None, 3])
    fill_missing_data(points)
    assert points[1]['value'] is None


def test_outlier_is_flagged_and_cluster_is_not():
    values = [19.8, 20.1, 20.0, 19.9, 20.2, 20.0, 19.7, 20.3, 20.0, 200]
    anomalies = detect_anomalies(series(values))

    assert len(anomalies) == 1
    assert anomalies[0]['index'] == 9
    assert anomalies[0]['value'] == 200
    assert anomalies[0]['deviation'] > 0
    assert anomalies[0]['z_score'] > 3


def test_outlier_against_identical_cluster_uses_whole_series_z():
    values = [20] * 9 + [200]

    # mean 38, std 54: z is exactly 3, which is not above the default
    assert detect_anomalies(series(values)) == []

    anomalies = detect_anomalies(series(values), threshold=2.5)
    assert [a['index'] for a in anomalies] == [9]
    assert anomalies[0]['z_score'] == 3.0
    assert anomalies[0]['deviation'] == 162


def test_small_step_from_flat_series_respects_threshold():
    values = [0.0] * 29 + [0.2]

    assert detect_anomalies(series(values), threshold=10) == []

    anomalies = detect_anomalies(series(values))
    assert [a['index'] for a in anomalies] == [29]
    assert anomalies[0]['z_score'] == 5.39


def test_z_exactly_on_threshold_is_not_flagged():
    assert detect_anomalies(series([20.0] * 9 + [20.1])) == []


def test_negative_outlier_has_negative_deviation():
    values = [50, 51, 49, 50, 52, 48, 50, 51, 49, 50, -40]
    anomalies = detect_anomalies(series(values))

    assert [a['index'] for a in anomalies] == [10]
    assert anomalies[0]['deviation'] < 0
    assert anomalies[0]['z_score'] < -3


def test_fewer_than_ten_points_finds_nothing():
    assert detect_anomalies(series([20] * 8 + [200])) == []


def test_flat_series_finds_nothing():
    assert detect_anomalies(series([20] * 12)) == []


def test_threshold_is_configurable():
    values = [10, 12, 11, 13, 10, 12, 11, 13, 10, 14]
    assert detect_anomalies(series(values)) == []
    assert [a['index'] for a in detect_anomalies(series(values), threshold=2)] == [9]


def test_moving_average_is_trailing():
    assert calculate_moving_average([1, 2, 3, 4, 5], window=3) == [None, None, 2.0, 3.0, 4.0]


def test_moving_average_skips_missing_values():
    assert calculate_moving_average([2, None, 4], window=2) == [None, 2.0, 4.0]
