"""AnomalyDetector — z-score outlier flagging over a numeric series."""

from __future__ import annotations

import math
from typing import Sequence

from shopdash.config import DEFAULT_ANOMALY_THRESHOLD
from shopdash.models.snapshot import Anomaly


class AnomalyDetector:
    """Flag points lying at least *threshold* population standard deviations
    from the series mean.

    A constant (or empty) series has no spread and therefore no anomalies.
    Results are ordered by index.
    """

    def detect(
        self,
        series: Sequence[float],
        threshold: float = DEFAULT_ANOMALY_THRESHOLD,
        labels: Sequence[str] | None = None,
    ) -> list[Anomaly]:
        n = len(series)
        if n == 0:
            return []
        mean = sum(series) / n
        std_dev = math.sqrt(sum((v - mean) ** 2 for v in series) / n)
        if std_dev == 0:
            return []

        anomalies: list[Anomaly] = []
        for i, value in enumerate(series):
            z_score = abs(value - mean) / std_dev
            if z_score >= threshold:
                label = labels[i] if labels is not None and i < len(labels) else ""
                anomalies.append(
                    Anomaly(index=i, value=float(value), z_score=z_score, label=label)
                )
        return anomalies
