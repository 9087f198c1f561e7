from __future__ import annotations
import logging, time
from typing import Dict, Iterator, List, Sequence

from prometheus_client import Gauge
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from ..fetcher.snapshot import Snapshot

log = logging.getLogger(__name__)


def fqname(*parts: str) -> str:
    return "_".join(p for p in parts if p)


class GaugeVec:
    """Unregistered labelled gauge with the constant labels appended."""

    def __init__(self, namespace: str, subsystem: str, name: str, documentation: str,
                 labelnames: Sequence[str], const_labels: Dict[str, str]):
        self.name = fqname(namespace, subsystem, name)
        self._const = tuple(const_labels.values())
        self._gauge = Gauge(self.name, documentation, list(labelnames) + list(const_labels), registry=None)

    def labels(self, *values):
        return self._gauge.labels(*values, *self._const)

    def reset(self) -> None:
        self._gauge.clear()

    def describe(self) -> List[Metric]:
        return self._gauge.describe()

    def collect(self) -> List[Metric]:
        return self._gauge.collect()


class ObjectCollector:
    """One metric family projected from a Snapshot.

    Subclasses declare their gauges with self.gauge() and fill them in
    report(). A truthy return from report() counts as a scrape error while
    keeping whatever was reported.
    """

    family = ""
    title = ""

    def __init__(self, namespace: str, environment: str, deployment: str):
        self.namespace = namespace
        self.const_labels = {"environment": environment, "deployment": deployment}
        self.scrapes_total = 0
        self.scrape_errors_total = 0
        self.vectors: List[GaugeVec] = []

    def gauge(self, subsystem: str, name: str, documentation: str, labelnames: Sequence[str] = ()) -> GaugeVec:
        vec = GaugeVec(self.namespace, subsystem, name, documentation, labelnames, self.const_labels)
        self.vectors.append(vec)
        return vec

    def report(self, objs: Snapshot) -> bool:
        raise NotImplementedError

    def describe(self) -> Iterator[Metric]:
        for vec in self.vectors:
            yield from vec.describe()
        yield from self._scrape_metrics()

    def collect(self, objs: Snapshot) -> Iterator[Metric]:
        for vec in self.vectors:
            vec.reset()

        failed = objs.error is not None
        if not failed:
            failed = bool(self.report(objs))
        if failed:
            self.scrape_errors_total += 1
        self.scrapes_total += 1

        if objs.error is None:
            for vec in self.vectors:
                yield from vec.collect()
        yield from self._scrape_metrics(failed, objs.took, time.time())

    def _scrape_metrics(self, failed=None, took=None, now=None) -> Iterator[Metric]:
        labels = list(self.const_labels)
        values = list(self.const_labels.values())
        ns, fam, title = self.namespace, self.family, self.title

        scrapes = CounterMetricFamily(
            fqname(ns, f"{fam}_scrapes"),
            f"Total number of scrapes for Cloud Foundry {title}.", labels=labels)
        errors = CounterMetricFamily(
            fqname(ns, f"{fam}_scrape_errors"),
            f"Total number of scrape errors of Cloud Foundry {title}.", labels=labels)
        last_error = GaugeMetricFamily(
            fqname(ns, f"last_{fam}_scrape_error"),
            f"Whether the last scrape of {title} metrics from Cloud Foundry resulted in an error (1 for error, 0 for success).",
            labels=labels)
        last_ts = GaugeMetricFamily(
            fqname(ns, f"last_{fam}_scrape_timestamp"),
            f"Number of seconds since 1970 since last scrape of {title} metrics from Cloud Foundry.",
            labels=labels)
        last_duration = GaugeMetricFamily(
            fqname(ns, f"last_{fam}_scrape_duration_seconds"),
            f"Duration of the last scrape of {title} metrics from Cloud Foundry.", labels=labels)

        if failed is not None:
            scrapes.add_metric(values, self.scrapes_total)
            errors.add_metric(values, self.scrape_errors_total)
            last_error.add_metric(values, 1.0 if failed else 0.0)
            last_ts.add_metric(values, now)
            last_duration.add_metric(values, took)
        yield from (scrapes, errors, last_error, last_ts, last_duration)
