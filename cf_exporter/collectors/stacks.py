from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class StacksCollector(ObjectCollector):
    family = "stacks"
    title = "Stacks"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "stack", "info", "Labeled Cloud Foundry Stack information with a constant '1' value.",
            ["stack_id", "stack_name"])

    def report(self, objs: Snapshot) -> bool:
        for stack in objs.stacks.values():
            self.info.labels(stack.guid, stack.name).set(1)
        return False
