from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Tuple

from ..fetcher.snapshot import Snapshot
from ..models import Task
from .base import ObjectCollector

UNAVAILABLE = "unavailable"


class TasksCollector(ObjectCollector):
    family = "tasks"
    title = "Tasks"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        labels = ["application_id", "state"]
        self.info = self.gauge(
            "task", "info", "Labeled Cloud Foundry Task information with a constant '1' value.", labels)
        self.count = self.gauge("task", "count", "Number of tasks per application and state.", labels)
        self.memory_mb_sum = self.gauge(
            "task", "memory_mb_sum", "Sum of memory (Mb) of the tasks per application and state.", labels)
        self.disk_quota_mb_sum = self.gauge(
            "task", "disk_quota_mb_sum", "Sum of disk quota (Mb) of the tasks per application and state.", labels)
        self.oldest_created_at = self.gauge(
            "task", "oldest_created_at",
            "Number of seconds since 1970 of creation time of the oldest task per application and state.",
            labels)

    def report(self, objs: Snapshot) -> bool:
        groups: Dict[Tuple[str, str], List[Task]] = defaultdict(list)
        for task in objs.tasks.values():
            groups[(task.app_guid or UNAVAILABLE, task.state)].append(task)

        for (app_guid, state), tasks in groups.items():
            self.info.labels(app_guid, state).set(1)
            self.count.labels(app_guid, state).set(len(tasks))
            self.memory_mb_sum.labels(app_guid, state).set(sum(t.memory_mb for t in tasks))
            self.disk_quota_mb_sum.labels(app_guid, state).set(sum(t.disk_mb for t in tasks))
            created = [t.created_at for t in tasks if t.created_at is not None]
            if created:
                self.oldest_created_at.labels(app_guid, state).set(int(min(created).timestamp()))
        return False
