from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector

INSTANCE_TYPES = {
    "managed": "managed_service_instance",
    "user-provided": "user_provided_service_instance",
}


class ServiceInstancesCollector(ObjectCollector):
    family = "service_instances"
    title = "Service Instances"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "service_instance", "info",
            "Labeled Cloud Foundry Service Instance information with a constant '1' value.",
            ["service_instance_id", "service_instance_name", "service_plan_id", "space_id", "type",
             "last_operation_type", "last_operation_state"])

    def report(self, objs: Snapshot) -> bool:
        for inst in objs.service_instances.values():
            self.info.labels(
                inst.guid, inst.name, inst.plan_guid, inst.space_guid,
                INSTANCE_TYPES.get(inst.type, inst.type),
                inst.last_operation_type, inst.last_operation_state,
            ).set(1)
        return False
