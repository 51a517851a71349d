"""Recency buckets used to triage areas by time since their last service.

Rules are evaluated in order and the first match wins:

1. an area being serviced right now is ``executing``;
2. an area never serviced is ``no-history``;
3. with a custom date range, ``custom`` when the last service date falls
   inside the inclusive range, no bucket otherwise;
4. otherwise whole days since the last service select one of the fixed
   bands. Day ``0`` and negative values (future dates) have no bucket.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from zeladoria.core.dates import coerce_date, days_between
from zeladoria.domain import AreaStatus, ServiceArea


class TimeBucket(str, Enum):
    EXECUTING = "executing"
    NO_HISTORY = "no-history"
    CUSTOM = "custom"
    DAYS_1_5 = "1-5"
    DAYS_6_15 = "6-15"
    DAYS_16_25 = "16-25"
    DAYS_26_35 = "26-35"
    DAYS_36_45 = "36-45"
    DAYS_46_PLUS = "46+"


_BANDS: tuple[tuple[int, int | None, TimeBucket], ...] = (
    (1, 5, TimeBucket.DAYS_1_5),
    (6, 15, TimeBucket.DAYS_6_15),
    (16, 25, TimeBucket.DAYS_16_25),
    (26, 35, TimeBucket.DAYS_26_35),
    (36, 45, TimeBucket.DAYS_36_45),
    (46, None, TimeBucket.DAYS_46_PLUS),
)


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive calendar-day range."""

    start: date
    end: date

    @classmethod
    def of(cls, start: object, end: object) -> "DateRange":
        return cls(coerce_date(start), coerce_date(end))

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


def bucket_for_days(days: int) -> TimeBucket | None:
    for low, high, bucket in _BANDS:
        if days >= low and (high is None or days <= high):
            return bucket
    return None


class TimeBucketClassifier:
    """Pure classification of one area against a reference date."""

    @staticmethod
    def classify(
        area: ServiceArea,
        reference_date: date | str,
        custom_range: DateRange | None = None,
    ) -> TimeBucket | None:
        reference = coerce_date(reference_date)
        if area.status is AreaStatus.IN_PROGRESS:
            return TimeBucket.EXECUTING
        if area.last_serviced is None:
            return TimeBucket.NO_HISTORY
        if custom_range is not None:
            return TimeBucket.CUSTOM if area.last_serviced in custom_range else None
        elapsed = days_between(area.last_serviced, reference)
        return bucket_for_days(elapsed)

    @classmethod
    def matches(
        cls,
        area: ServiceArea,
        bucket: TimeBucket,
        reference_date: date | str,
        custom_range: DateRange | None = None,
    ) -> bool:
        if bucket is TimeBucket.CUSTOM and custom_range is None:
            return False
        return cls.classify(area, reference_date, custom_range) is bucket

    @classmethod
    def filter_by_bucket(
        cls,
        areas: Iterable[ServiceArea],
        bucket: TimeBucket,
        reference_date: date | str,
        custom_range: DateRange | None = None,
    ) -> list[ServiceArea]:
        reference = coerce_date(reference_date)
        return [area for area in areas if cls.matches(area, bucket, reference, custom_range)]

    @classmethod
    def bucket_counts(cls, areas: Iterable[ServiceArea], reference_date: date | str) -> dict[str, int]:
        reference = coerce_date(reference_date)
        counter = Counter(cls.classify(area, reference) for area in areas)
        counts = {bucket.value: counter.get(bucket, 0) for bucket in TimeBucket if bucket is not TimeBucket.CUSTOM}
        counts["unclassified"] = counter.get(None, 0)
        return counts
