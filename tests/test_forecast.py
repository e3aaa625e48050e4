"""Tests for trend forecasting and anomaly detection."""

from __future__ import annotations

import random

import pytest

from shopdash.analytics.anomaly import AnomalyDetector
from shopdash.analytics.forecast import InsufficientData, TrendForecaster


# ── TrendForecaster ──────────────────────────────────────────────────────────

class TestTrendForecaster:

    def test_needs_two_points(self):
        forecaster = TrendForecaster(rng=random.Random(1))
        with pytest.raises(InsufficientData):
            forecaster.forecast([], 3)
        with pytest.raises(InsufficientData):
            forecaster.forecast([42.0], 3)

    def test_zero_periods(self):
        assert TrendForecaster().forecast([1.0, 2.0], 0) == []

    def test_length(self):
        assert len(TrendForecaster().forecast([1.0, 2.0, 3.0], 6)) == 6

    def test_seeded_is_reproducible(self):
        series = [120.0, 150.0, 140.0, 180.0]
        a = TrendForecaster(rng=random.Random(42)).forecast(series, 5)
        b = TrendForecaster(rng=random.Random(42)).forecast(series, 5)
        assert a == b

    def test_rising_trend_within_jitter_band(self):
        predictions = TrendForecaster(rng=random.Random(7)).forecast([100.0, 200.0], 4)
        for i, value in enumerate(predictions, start=1):
            assert 200.0 + 100.0 * i * 0.8 <= value <= 200.0 + 100.0 * i * 1.2

    def test_flat_series(self):
        assert TrendForecaster(rng=random.Random(3)).forecast([50.0, 50.0], 3) == [50.0, 50.0, 50.0]

    def test_never_negative(self):
        predictions = TrendForecaster(rng=random.Random(11)).forecast([100.0, 10.0], 5)
        assert all(v >= 0.0 for v in predictions)
        # 10 - 90 * i * jitter is negative for every period
        assert predictions == [0.0] * 5

    def test_custom_jitter(self):
        forecaster = TrendForecaster(rng=random.Random(0), jitter_low=1.0, jitter_high=1.0)
        assert forecaster.forecast([10.0, 20.0], 3) == [30.0, 40.0, 50.0]


# ── AnomalyDetector ──────────────────────────────────────────────────────────

class TestAnomalyDetector:

    def test_spike_at_threshold(self):
        anomalies = AnomalyDetector().detect([100, 100, 100, 100, 1000], threshold=2.0)
        assert [a.index for a in anomalies] == [4]
        assert anomalies[0].value == 1000.0
        assert anomalies[0].z_score == pytest.approx(2.0)

    def test_empty_and_constant(self):
        detector = AnomalyDetector()
        assert detector.detect([]) == []
        assert detector.detect([7.0] * 12) == []

    def test_symmetric_under_reflection(self):
        series = [10.0, 12.0, 11.0, 50.0, 9.0, 10.0]
        mean = sum(series) / len(series)
        mirrored = [2 * mean - v for v in series]
        detector = AnomalyDetector()
        original = detector.detect(series, 2.0)
        reflected = detector.detect(mirrored, 2.0)
        assert [a.index for a in original] == [3]
        assert [a.index for a in reflected] == [3]
        assert reflected[0].z_score == pytest.approx(original[0].z_score)

    def test_higher_threshold_flags_less(self):
        series = [10.0, 12.0, 11.0, 50.0, 9.0, 10.0]
        assert AnomalyDetector().detect(series, 3.0) == []

    def test_labels_attached(self):
        labels = ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05"]
        anomalies = AnomalyDetector().detect([1, 1, 1, 1, 9], 1.5, labels=labels)
        assert [a.label for a in anomalies] == ["2024-05"]

    def test_results_ordered_by_index(self):
        series = [0.0] * 20 + [100.0] + [0.0] * 20 + [100.0]
        anomalies = AnomalyDetector().detect(series, 2.0)
        assert [a.index for a in anomalies] == [20, 41]
