from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class ServiceBindingsCollector(ObjectCollector):
    family = "service_bindings"
    title = "Service Bindings"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "service_binding", "info",
            "Labeled Cloud Foundry Service Binding information with a constant '1' value.",
            ["service_binding_id", "application_id", "service_instance_id"])

    def report(self, objs: Snapshot) -> bool:
        for b in objs.service_bindings.values():
            # service keys are credential bindings without an app
            if b.type == "key":
                continue
            self.info.labels(b.guid, b.app_guid, b.service_instance_guid).set(1)
        return False
