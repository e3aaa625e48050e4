"""RevenueEstimator — the single seam producing revenue history.

Everything downstream of the aggregator consumes a :class:`RevenueEstimate`
and never knows whether it came from recorded orders or from the synthetic
fallback used while a storefront has no transaction history.

Contract
--------
``estimate(products, date_range)`` returns exactly ``MONTHS_OF_HISTORY``
non-negative monthly totals, in chronological order, for the calendar months
ending with the month of ``date_range.end``; plus an order count, the revenue
those orders brought in, and a visit count.  ``period_revenue`` and
``order_count`` always describe the same set of orders, so their ratio is the
average order value; ``None`` means the orders span the whole monthly series.
"""

from __future__ import annotations

import abc
import logging
import math
import random
from typing import Optional, Sequence

from pydantic import BaseModel

from shopdash.analytics.ledger import ORDER, VISIT, OrderLedger
from shopdash.config import DEFAULT_SALES_FRACTION, MONTHS_OF_HISTORY
from shopdash.models.snapshot import DateRange, Entity, month_labels

logger = logging.getLogger(__name__)


class RevenueEstimate(BaseModel):
    monthly_revenue: list[float]
    order_count: int = 0
    visit_count: int = 0
    period_revenue: Optional[float] = None


class RevenueEstimator(abc.ABC):
    """Abstract revenue history provider."""

    @abc.abstractmethod
    def estimate(self, products: Sequence[Entity], date_range: DateRange) -> RevenueEstimate:
        """Return the revenue history for *date_range*."""


class SyntheticRevenueEstimator(RevenueEstimator):
    """Plausible revenue history derived from the catalog alone.

    Each bucket is ``baseline * growth * season * noise`` where the baseline
    is a fraction of the catalog's stock value, growth is linear over the
    year, season is a sine wave and noise is uniform in ``[0.9, 1.1]``.
    Pass *seed* (or *rng*) for a reproducible series.
    """

    def __init__(
        self,
        seed: int | None = None,
        rng: random.Random | None = None,
        monthly_share: float = 0.08,
        growth_rate: float = 0.03,
        seasonal_amplitude: float = 0.2,
        conversion_rate: float = 0.025,
    ) -> None:
        self._rng = rng or random.Random(seed)
        self.monthly_share = monthly_share
        self.growth_rate = growth_rate
        self.seasonal_amplitude = seasonal_amplitude
        self.conversion_rate = conversion_rate

    def estimate(self, products: Sequence[Entity], date_range: DateRange) -> RevenueEstimate:
        catalog_value = sum(max(p.price, 0.0) * max(p.stock, 0) for p in products)
        baseline = catalog_value * self.monthly_share

        monthly: list[float] = []
        for i in range(MONTHS_OF_HISTORY):
            growth = 1.0 + self.growth_rate * i
            season = 1.0 + self.seasonal_amplitude * math.sin(2 * math.pi * i / MONTHS_OF_HISTORY)
            noise = self._rng.uniform(0.9, 1.1)
            monthly.append(round(max(baseline * growth * season * noise, 0.0), 2))

        orders = sum(int(max(p.stock, 0) * DEFAULT_SALES_FRACTION) for p in products)
        visits = int(round(orders / self.conversion_rate)) if orders else 0
        return RevenueEstimate(monthly_revenue=monthly, order_count=orders, visit_count=visits)


class LedgerRevenueEstimator(RevenueEstimator):
    """Revenue history from recorded orders in an :class:`OrderLedger`."""

    def __init__(self, ledger: OrderLedger) -> None:
        self.ledger = ledger

    def estimate(self, products: Sequence[Entity], date_range: DateRange) -> RevenueEstimate:
        totals = self.ledger.monthly_totals(ORDER)
        monthly = [round(totals.get(label, 0.0), 2) for label in month_labels(date_range.end)]
        orders = self.ledger.count(ORDER, date_range.start, date_range.end)
        visits = self.ledger.count(VISIT, date_range.start, date_range.end)
        in_range = round(self.ledger.total(ORDER, date_range.start, date_range.end), 2)
        logger.debug("Ledger estimate: %d orders worth %.2f, %d visits", orders, in_range, visits)
        return RevenueEstimate(
            monthly_revenue=monthly,
            order_count=orders,
            visit_count=visits,
            period_revenue=in_range,
        )
