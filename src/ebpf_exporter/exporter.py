"""
Prometheus collector exposing kernel tables of attached programs as metrics.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Sequence, Tuple

from prometheus_client.core import HistogramMetricFamily, Metric
from prometheus_client.utils import floatToGoString

from .attach import AttachmentManager
from .config import Config, Counter, Histogram, Label, Program
from .decoders import DecoderSet
from .exceptions import (
    BucketParseError,
    HistogramTransformError,
    ProgramNotAttachedError,
    TableDumpError,
    TableReadError,
)
from .histograms import group_histogram_rows, transform_histogram
from .tables import BCCTableCapability, MetricValue, TableCapability, TableReader

LOG = logging.getLogger(__name__)

# Namespace to use for all metrics
NAMESPACE = "ebpf_exporter"

COUNTER = "counter"
HISTOGRAM = "histogram"


@dataclass(frozen=True)
class Descriptor:
    """Exported identity of one metric."""

    name: str
    documentation: str
    label_names: Tuple[str, ...]
    kind: str

    def family(self) -> Metric:
        if self.kind == HISTOGRAM:
            return HistogramMetricFamily(self.name, self.documentation, labels=self.label_names)
        return CounterFamily(self.name, self.documentation, labels=self.label_names)


class CounterFamily(Metric):
    """
    Counter whose samples carry the configured name as is.

    ``CounterMetricFamily`` appends ``_total`` to every sample, which would
    rename counters configured without that suffix.
    """

    def __init__(self, name: str, documentation: str, labels: Sequence[str] = ()) -> None:
        super().__init__(name, documentation, COUNTER)
        self.sample_name = name
        self.label_names = tuple(labels)

    def add_metric(self, labels: Sequence[str], value: float) -> None:
        self.add_sample(self.sample_name, dict(zip(self.label_names, labels)), value)


def build_fq_name(*parts: str) -> str:
    return "_".join(part for part in parts if part)


class DescriptorCache:
    """
    Descriptors keyed by (program, metric), created at most once each.

    Scrapes may describe and collect concurrently, creation happens under a lock
    so concurrent first callers get the very same descriptor.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._descriptors: Dict[Tuple[str, str], Descriptor] = {}

    def get_or_create(self, program: str, metric: str, factory: Callable[[], Descriptor]) -> Descriptor:
        key = (program, metric)
        with self._lock:
            descriptor = self._descriptors.get(key)
            if descriptor is None:
                descriptor = self._descriptors[key] = factory()
            return descriptor

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)


def _label_names(labels: Sequence[Label]) -> Tuple[str, ...]:
    return tuple(label.name for label in labels)


class Exporter:
    """
    Custom collector for ``prometheus_client`` registries.

    Every configured counter and histogram is read from its kernel table on
    each scrape. A metric whose table cannot be read is left out of that
    scrape, other metrics are not affected.
    """

    def __init__(
        self,
        config: Config,
        attachments: AttachmentManager,
        table_capability: TableCapability | None = None,
        decoders: DecoderSet | None = None,
    ) -> None:
        self.config = config
        self.attachments = attachments
        self.reader = TableReader(table_capability or BCCTableCapability(), decoders or DecoderSet())
        self.descriptors = DescriptorCache()

    def counter_descriptor(self, program: Program, counter: Counter) -> Descriptor:
        return self.descriptors.get_or_create(
            program.name,
            counter.name,
            lambda: Descriptor(
                name=build_fq_name(NAMESPACE, counter.name),
                documentation=counter.help,
                label_names=_label_names(counter.labels),
                kind=COUNTER,
            ),
        )

    def histogram_descriptor(self, program: Program, histogram: Histogram) -> Descriptor:
        return self.descriptors.get_or_create(
            program.name,
            histogram.name,
            lambda: Descriptor(
                name=build_fq_name(NAMESPACE, histogram.name),
                documentation=histogram.help,
                label_names=_label_names(histogram.group_labels),
                kind=HISTOGRAM,
            ),
        )

    def descriptors_for_all(self) -> Iterator[Descriptor]:
        for program in self.config.programs:
            for counter in program.counters:
                yield self.counter_descriptor(program, counter)
            for histogram in program.histograms:
                yield self.histogram_descriptor(program, histogram)

    def describe(self) -> Iterator[Metric]:
        """Yield an empty family for every metric the exporter can report."""
        for descriptor in self.descriptors_for_all():
            yield descriptor.family()

    def collect(self) -> Iterator[Metric]:
        yield from self.collect_counters()
        yield from self.collect_histograms()

    def _table_values(self, program: Program, table: str, labels: Sequence[Label]) -> List[MetricValue]:
        module = self.attachments.module(program.name)
        return self.reader.table_values(module, table, labels)

    def collect_counters(self) -> Iterator[Metric]:
        for program in self.config.programs:
            for counter in program.counters:
                try:
                    values = self._table_values(program, counter.table, counter.labels)
                except (TableReadError, ProgramNotAttachedError) as exc:
                    LOG.error(
                        "Error getting table %r values for metric %r of program %r: %s",
                        counter.table,
                        counter.name,
                        program.name,
                        exc,
                    )
                    continue

                family = self.counter_descriptor(program, counter).family()
                for value in values:
                    family.add_metric(list(value.labels), value.value)
                yield family

    def collect_histograms(self) -> Iterator[Metric]:
        for program in self.config.programs:
            for histogram in program.histograms:
                family = self._collect_histogram(program, histogram)
                if family is not None:
                    yield family

    def _collect_histogram(self, program: Program, histogram: Histogram) -> Metric | None:
        try:
            values = self._table_values(program, histogram.table, histogram.labels)
        except (TableReadError, ProgramNotAttachedError) as exc:
            LOG.error(
                "Error getting table %r values for metric %r of program %r: %s",
                histogram.table,
                histogram.name,
                program.name,
                exc,
            )
            return None

        # One bad bucket makes the whole histogram untrustworthy for this scrape.
        try:
            groups = group_histogram_rows(values)
        except BucketParseError as exc:
            LOG.error(
                "Error parsing buckets in table %r for metric %r of program %r: %s",
                histogram.table,
                histogram.name,
                program.name,
                exc,
            )
            return None

        family = self.histogram_descriptor(program, histogram).family()
        for group in groups:
            try:
                buckets, count = transform_histogram(group.buckets, histogram)
            except HistogramTransformError as exc:
                LOG.error(
                    "Error transforming histogram for metric %r in program %r: %s",
                    histogram.name,
                    program.name,
                    exc,
                )
                continue

            # Sum is always zero: kernel tables only hold bucket counts, so the
            # real sum is lost. Without a sum there is no +Inf bucket either and
            # programs must cap their bucket values instead.
            family.add_metric(
                list(group.labels),
                [(floatToGoString(boundary), value) for boundary, value in buckets.items()],
                sum_value=0,
            )
            LOG.debug("Histogram %s%s has %d observations", histogram.name, list(group.labels), count)
        return family

    def export_tables(self) -> Dict[str, Dict[str, List[MetricValue]]]:
        """Decoded rows of every table referenced by a metric, per program."""
        tables: Dict[str, Dict[str, List[MetricValue]]] = {}
        for program in self.config.programs:
            try:
                module = self.attachments.module(program.name)
            except ProgramNotAttachedError as exc:
                raise TableDumpError(str(exc)) from exc

            metric_tables: Dict[str, Sequence[Label]] = {}
            for counter in program.counters:
                if counter.table:
                    metric_tables[counter.table] = counter.labels
            for histogram in program.histograms:
                if histogram.table:
                    metric_tables[histogram.table] = histogram.labels

            program_tables = tables.setdefault(program.name, {})
            for name, labels in metric_tables.items():
                try:
                    program_tables[name] = self.reader.table_values(module, name, labels)
                except TableReadError as exc:
                    raise TableDumpError(
                        f"error getting values for table {name!r} of program {program.name!r}: {exc}"
                    ) from exc
        return tables

