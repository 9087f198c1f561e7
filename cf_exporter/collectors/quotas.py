from __future__ import annotations
from typing import List, Sequence, Tuple

from ..models import Quota
from ..utils.convert import bool_to_float, null_int_to_float
from .base import GaugeVec, ObjectCollector

# (metric name, quota attribute, help)
QUOTA_METRICS: List[Tuple[str, str, str]] = [
    ("non_basic_services_allowed", "paid_services_allowed", "non-basic services are allowed"),
    ("instance_memory_mb_limit", "instance_memory_mb", "maximum amount of memory (Mb) an application instance can have"),
    ("total_app_instances_quota", "total_app_instances", "total number of application instances"),
    ("total_app_tasks_quota", "total_app_tasks", "total number of application tasks"),
    ("total_memory_mb_quota", "total_memory_mb", "total amount of memory (Mb)"),
    ("total_private_domains_quota", "total_private_domains", "total number of private domains"),
    ("total_reserved_route_ports_quota", "total_reserved_ports", "total number of route ports"),
    ("total_routes_quota", "total_routes", "total number of routes"),
    ("total_service_keys_quota", "total_service_keys", "total number of service keys"),
    ("total_services_quota", "total_service_instances", "total number of service instances"),
]


class QuotaGauges:
    """The quota limit gauges shared by organizations and spaces."""

    def __init__(self, collector: ObjectCollector, subsystem: str, owner: str,
                 labelnames: Sequence[str], skip: Sequence[str] = ()):
        self.gauges: List[Tuple[str, GaugeVec]] = []
        for name, attr, what in QUOTA_METRICS:
            if name in skip:
                continue
            doc = f"Cloud Foundry {owner} quota: {what} (-1 means unlimited)."
            self.gauges.append((attr, collector.gauge(subsystem, name, doc, labelnames)))

    def set(self, quota: Quota, *labels: str) -> None:
        for attr, vec in self.gauges:
            value = getattr(quota, attr)
            if attr == "paid_services_allowed":
                vec.labels(*labels).set(bool_to_float(value))
            else:
                vec.labels(*labels).set(null_int_to_float(value))
