from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class ServicesCollector(ObjectCollector):
    family = "services"
    title = "Services"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "service", "info", "Labeled Cloud Foundry Service information with a constant '1' value.",
            ["service_id", "service_label", "service_broker_id", "service_broker_name"])

    def report(self, objs: Snapshot) -> bool:
        for offering in objs.service_offerings.values():
            broker = objs.service_brokers.get(offering.broker_guid)
            self.info.labels(offering.guid, offering.name, offering.broker_guid,
                             broker.name if broker else "").set(1)
        return False
