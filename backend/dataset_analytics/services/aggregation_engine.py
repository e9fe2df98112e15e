"""Aggregation engine for category statistics, outliers, rankings and trends."""
import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dataset_analytics.services.records import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategorySummary:
    """Summary statistics for one category."""
    category: str
    count: int
    min: float
    max: float
    mean: float
    standard_deviation: float  # sample (n-1); 0.0 when count <= 1


@dataclass(frozen=True)
class TrendPoint:
    """Mean value of one category on one calendar day."""
    category: str
    date: date
    average_value: float


@dataclass(frozen=True)
class LabelFrequency:
    """How often a label occurs within a category."""
    category: str
    label: str
    count: int


def ordered_band(low: float, high: float) -> Tuple[float, float]:
    """Return (low, high) with a reversed pair swapped."""
    if low > high:
        return high, low
    return low, high


def _mean(values: Sequence[float]) -> float:
    mean = math.fsum(values) / len(values)
    # rounding can push the quotient a few ulps past the observed range
    return min(max(mean, min(values)), max(values))


def _sample_std(values: Sequence[float], mean: float) -> float:
    n = len(values)
    if n <= 1:
        return 0.0
    squared = math.fsum((v - mean) ** 2 for v in values)
    return math.sqrt(squared / (n - 1))


def _median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


class AggregationEngine:
    """
    Aggregation engine over an in-memory snapshot of records.

    Rules:
    - No mutation: inputs are read, never modified
    - No hidden state: every method is a one-shot transformation
    - Deterministic: same inputs in the same order produce identical outputs
    - Empty input yields empty output, never an error

    Inputs:
    - Validated Record objects (see IngestionService)

    Outputs:
    - Category summaries, means and medians
    - Outlier lists and top-N rankings
    - Daily trend series
    - Label frequency tables
    """

    def _partition(self, records: Iterable[Record]) -> Dict[str, List[Record]]:
        """
        Group records by category, preserving input order inside each group.

        Returns:
            Mapping category -> records, keys sorted ascending
        """
        groups: Dict[str, List[Record]] = {}
        for record in records:
            groups.setdefault(record.category, []).append(record)
        return {category: groups[category] for category in sorted(groups)}

    def summarize(self, records: Iterable[Record]) -> Dict[str, CategorySummary]:
        """
        Compute count, min, max, mean and sample standard deviation per category.

        Standard deviation uses the unbiased estimator (divide by n-1) and is
        0.0 for a category holding a single record.

        Args:
            records: Records to summarize

        Returns:
            Mapping category -> CategorySummary, ordered by category
        """
        summaries = {}
        for category, group in self._partition(records).items():
            values = [r.value for r in group]
            mean = _mean(values)
            summaries[category] = CategorySummary(
                category=category,
                count=len(values),
                min=min(values),
                max=max(values),
                mean=mean,
                standard_deviation=_sample_std(values, mean),
            )
        logger.debug("summarize: %d categories", len(summaries))
        return summaries

    def category_means(self, records: Iterable[Record]) -> Dict[str, float]:
        """Mean value per category, ordered by category."""
        return {
            category: _mean([r.value for r in group])
            for category, group in self._partition(records).items()
        }

    def category_medians(self, records: Iterable[Record]) -> Dict[str, float]:
        """
        Median value per category, ordered by category.

        For an even count the median is the mean of the two middle values.
        """
        return {
            category: _median([r.value for r in group])
            for category, group in self._partition(records).items()
        }

    def detect_outliers(
        self,
        records: Iterable[Record],
        low_threshold: float,
        high_threshold: float,
    ) -> List[Record]:
        """
        Return records whose value is strictly outside [low_threshold, high_threshold].

        A reversed band (low > high) is swapped before use.

        Args:
            records: Records to scan
            low_threshold: Values strictly below are outliers
            high_threshold: Values strictly above are outliers

        Returns:
            Outlier records in input order
        """
        low_threshold, high_threshold = ordered_band(low_threshold, high_threshold)
        outliers = [
            r for r in records
            if r.value < low_threshold or r.value > high_threshold
        ]
        logger.debug(
            "detect_outliers: %d outliers outside [%s, %s]",
            len(outliers), low_threshold, high_threshold
        )
        return outliers

    def top_n_per_category(self, records: Iterable[Record], n: int) -> List[Record]:
        """
        Return at most n highest-valued records per category.

        Ties keep their input order. The result is ordered by category
        ascending, then value descending.

        Args:
            records: Records to rank
            n: Maximum records per category; n <= 0 yields []

        Returns:
            Ranked records
        """
        if n <= 0:
            return []

        ranked: List[Record] = []
        for group in self._partition(records).values():
            # sorted() is stable, so equal values stay in input order
            ranked.extend(sorted(group, key=lambda r: r.value, reverse=True)[:n])
        return ranked

    def daily_trend(self, records: Iterable[Record]) -> List[TrendPoint]:
        """
        Mean value per (category, calendar date), ordered by date then category.

        Args:
            records: Records to aggregate

        Returns:
            List of TrendPoint objects
        """
        buckets: Dict[Tuple[date, str], List[float]] = {}
        for record in records:
            key = (record.timestamp.date(), record.category)
            buckets.setdefault(key, []).append(record.value)

        points = [
            TrendPoint(category=category, date=day, average_value=_mean(values))
            for (day, category), values in sorted(buckets.items())
        ]
        logger.debug("daily_trend: %d points", len(points))
        return points

    def frequent_labels(self, records: Iterable[Record]) -> Dict[Tuple[str, str], int]:
        """
        Count records per (category, label).

        Keys are ordered by category ascending, then count descending; labels
        with equal counts keep the order they were first seen in.

        Args:
            records: Records to count

        Returns:
            Mapping (category, label) -> count
        """
        counts = Counter((r.category, r.label) for r in records)
        # Counter preserves first-seen order, and sorted() is stable
        ordered = sorted(counts.items(), key=lambda item: (item[0][0], -item[1]))
        return dict(ordered)

    def rank_labels(
        self,
        frequencies: Dict[Tuple[str, str], int],
        category: Optional[str] = None,
    ) -> Dict[str, List[LabelFrequency]]:
        """
        Turn a frequent_labels() table into per-category rankings.

        Args:
            frequencies: Output of frequent_labels()
            category: Optional category to restrict the ranking to

        Returns:
            Mapping category -> LabelFrequency list, highest count first
        """
        rankings: Dict[str, List[LabelFrequency]] = {}
        for (cat, label), count in frequencies.items():
            if category is not None and cat != category:
                continue
            rankings.setdefault(cat, []).append(
                LabelFrequency(category=cat, label=label, count=count)
            )
        return {
            cat: sorted(items, key=lambda item: -item.count)
            for cat, items in sorted(rankings.items())
        }
