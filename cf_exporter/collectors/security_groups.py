from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class SecurityGroupsCollector(ObjectCollector):
    family = "security_groups"
    title = "Security Groups"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "security_group", "info",
            "Labeled Cloud Foundry Security Group information with a constant '1' value.",
            ["security_group_id", "security_group_name"])

    def report(self, objs: Snapshot) -> bool:
        for group in objs.security_groups.values():
            self.info.labels(group.guid, group.name).set(1)
        return False
