from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class ServicePlansCollector(ObjectCollector):
    family = "service_plans"
    title = "Service Plans"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "service_plan", "info",
            "Labeled Cloud Foundry Service Plan information with a constant '1' value.",
            ["service_plan_id", "service_plan_name", "service_id"])

    def report(self, objs: Snapshot) -> bool:
        for plan in objs.service_plans.values():
            self.info.labels(plan.guid, plan.name, plan.offering_guid).set(1)
        return False
