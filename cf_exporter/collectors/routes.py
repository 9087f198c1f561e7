from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class RoutesCollector(ObjectCollector):
    family = "routes"
    title = "Routes"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "route", "info", "Labeled Cloud Foundry Route information with a constant '1' value.",
            ["route_id", "route_host", "route_path", "domain_id", "space_id", "service_instance_id"])

    def report(self, objs: Snapshot) -> bool:
        for route in objs.routes.values():
            binding = objs.route_bindings.get(route.guid)
            instance_guid = binding.service_instance_guid if binding else ""
            self.info.labels(route.guid, route.host, route.path, route.domain_guid,
                             route.space_guid, instance_guid).set(1)
        return False
