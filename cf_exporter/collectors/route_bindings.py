from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class ServiceRouteBindingsCollector(ObjectCollector):
    family = "service_route_bindings"
    title = "Service Route Bindings"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "service_route_binding", "info",
            "Labeled Cloud Foundry Service Route Binding information with a constant '1' value.",
            ["service_route_binding_id", "route_service_url", "service_instance_id", "route_id"])

    def report(self, objs: Snapshot) -> bool:
        for b in objs.service_route_bindings.values():
            self.info.labels(b.guid, b.route_service_url, b.service_instance_guid, b.route_guid).set(1)
        return False
