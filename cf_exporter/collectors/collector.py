from __future__ import annotations
import logging, platform, threading
from typing import Iterator, List

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector as _Collector

from .. import __version__, filters
from ..fetcher import Fetcher
from ..filters import Filter
from .applications import ApplicationsCollector
from .base import ObjectCollector, fqname
from .buildpacks import BuildpacksCollector
from .domains import DomainsCollector
from .events import EventsCollector
from .isolation_segments import IsolationSegmentsCollector
from .organizations import OrganizationsCollector
from .route_bindings import ServiceRouteBindingsCollector
from .routes import RoutesCollector
from .security_groups import SecurityGroupsCollector
from .service_bindings import ServiceBindingsCollector
from .service_instances import ServiceInstancesCollector
from .service_plans import ServicePlansCollector
from .services import ServicesCollector
from .spaces import SpacesCollector
from .stacks import StacksCollector
from .tasks import TasksCollector

log = logging.getLogger(__name__)

# registration order, which is also the exposition order
COLLECTORS = [
    (filters.APPLICATIONS, ApplicationsCollector),
    (filters.BUILDPACKS, BuildpacksCollector),
    (filters.DOMAINS, DomainsCollector),
    (filters.EVENTS, EventsCollector),
    (filters.ISOLATION_SEGMENTS, IsolationSegmentsCollector),
    (filters.ORGANIZATIONS, OrganizationsCollector),
    (filters.ROUTES, RoutesCollector),
    (filters.SECURITY_GROUPS, SecurityGroupsCollector),
    (filters.SERVICE_BINDINGS, ServiceBindingsCollector),
    (filters.SERVICE_INSTANCES, ServiceInstancesCollector),
    (filters.SERVICE_PLANS, ServicePlansCollector),
    (filters.SERVICE_ROUTE_BINDINGS, ServiceRouteBindingsCollector),
    (filters.SERVICES, ServicesCollector),
    (filters.SPACES, SpacesCollector),
    (filters.STACKS, StacksCollector),
    (filters.TASKS, TasksCollector),
]


class Collector(_Collector):
    """Runs one fetch per scrape and hands the snapshot to every enabled family."""

    def __init__(self, namespace: str, environment: str, deployment: str, fetcher: Fetcher, filter: Filter):
        self.namespace = namespace
        self.fetcher = fetcher
        self.collectors: List[ObjectCollector] = [
            cls(namespace, environment, deployment) for name, cls in COLLECTORS if filter.enabled(name)
        ]
        self._scrape_lock = threading.Lock()
        log.info("enabled collectors: %s", ", ".join(c.family for c in self.collectors))

    def _build_info(self, describe: bool = False) -> GaugeMetricFamily:
        g = GaugeMetricFamily(fqname(self.namespace, "exporter_build_info"),
                              "Build information of the Cloud Foundry exporter with a constant '1' value.",
                              labels=["version", "python_version"])
        if not describe:
            g.add_metric([__version__, platform.python_version()], 1)
        return g

    def describe(self) -> Iterator[Metric]:
        yield self._build_info(describe=True)
        for c in self.collectors:
            yield from c.describe()

    def collect(self) -> Iterator[Metric]:
        with self._scrape_lock:
            objs = self.fetcher.get_objects()
            yield self._build_info()
            for c in self.collectors:
                yield from c.collect(objs)
