"""TrendForecaster — project the last observed delta forward."""

from __future__ import annotations

import random
from typing import Sequence


class InsufficientData(ValueError):
    """Raised when a series is too short to derive a trend."""


class TrendForecaster:
    """Linear trend projection with multiplicative jitter.

    ``prediction[i] = max(0, last + trend * i * jitter)`` for ``i`` in
    ``1..periods``, where ``trend`` is the last delta of the series and
    ``jitter`` is drawn uniformly from ``[jitter_low, jitter_high]``.
    Predictions are floored at zero: revenue cannot be negative.

    Parameters
    ----------
    rng:
        Random source for the jitter; pass a seeded ``random.Random`` for
        reproducible forecasts.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        jitter_low: float = 0.8,
        jitter_high: float = 1.2,
    ) -> None:
        self._rng = rng or random.Random()
        self.jitter_low = jitter_low
        self.jitter_high = jitter_high

    def forecast(self, series: Sequence[float], periods: int) -> list[float]:
        if len(series) < 2:
            raise InsufficientData(
                f"forecast needs at least 2 points, got {len(series)}"
            )
        last = float(series[-1])
        trend = last - float(series[-2])
        predictions: list[float] = []
        for i in range(1, periods + 1):
            jitter = self._rng.uniform(self.jitter_low, self.jitter_high)
            predictions.append(max(0.0, last + trend * i * jitter))
        return predictions
