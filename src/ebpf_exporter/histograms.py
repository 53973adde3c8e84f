"""
Grouping of histogram table rows and conversion into cumulative buckets.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from .config import Histogram
from .exceptions import BucketParseError, HistogramTransformError
from .parsing import parse_uint
from .tables import MetricValue


@dataclass
class HistogramGroup:
    """Raw per-bucket counts of one label combination."""

    labels: Tuple[str, ...]
    # keyed by the raw uint64 boundary, floats would merge values above 2**53
    buckets: Dict[int, int] = field(default_factory=dict)


def group_histogram_rows(rows: Iterable[MetricValue]) -> List[HistogramGroup]:
    """
    Group rows by every label but the last, which holds the bucket boundary.

    Before:

    * [sda, read, 1] -> 10
    * [sda, read, 2] -> 2
    * [sda, read, 4] -> 5

    After:

    * [sda, read] -> {1 -> 10, 2 -> 2, 4 -> 5}

    A single unparsable boundary raises ``BucketParseError``, nothing is
    returned for the other groups either.
    """
    groups: Dict[Tuple[str, ...], HistogramGroup] = {}
    for row in rows:
        if not row.labels:
            raise BucketParseError(f"row {row.raw!r} has no bucket label")
        key = row.labels[:-1]
        try:
            boundary = parse_uint(row.labels[-1])
        except ValueError as exc:
            raise BucketParseError(f"error parsing bucket for labels {list(row.labels)}: {exc}") from exc

        group = groups.get(key)
        if group is None:
            group = groups[key] = HistogramGroup(labels=key)
        group.buckets[boundary] = int(row.value)
    return list(groups.values())


def bucket_boundary(raw: int, histogram: Histogram) -> float:
    """Map a kernel-side bucket value to the exported ``le`` boundary."""
    multiplier = histogram.bucket_multiplier
    if histogram.bucket_type == "fixed":
        return float(raw) * multiplier
    if histogram.bucket_type == "exp2":
        try:
            return math.ldexp(1.0, raw) * multiplier
        except OverflowError as exc:
            raise HistogramTransformError(f"exp2 bucket {raw!r} is out of range") from exc
    raise HistogramTransformError(f"unknown histogram bucket type {histogram.bucket_type!r}")


def transform_histogram(
    buckets: Mapping[int, int], histogram: Histogram
) -> Tuple[Dict[float, int], int]:
    """
    Turn raw per-bucket counts into cumulative ones.

    Returns the cumulative buckets keyed by exported boundary, in ascending
    order, and the total count. No ``+Inf`` bucket is added: programs must cap
    their bucket values so the largest bucket catches everything.
    """
    result: Dict[float, int] = {}
    count = 0
    previous = -math.inf
    for raw in sorted(buckets):
        boundary = bucket_boundary(raw, histogram)
        if not math.isfinite(boundary) or boundary <= previous:
            raise HistogramTransformError(
                f"bucket {raw!r} maps to boundary {boundary!r}, boundaries must be finite and increasing"
            )
        previous = boundary
        count += buckets[raw]
        result[boundary] = count
    return result, count
