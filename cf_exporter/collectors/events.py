from __future__ import annotations
from datetime import datetime
from typing import Callable

from ..fetcher.snapshot import Snapshot
from ..utils.convert import utcnow
from .base import ObjectCollector


class EventsCollector(ObjectCollector):
    """Audit events newer than the previous scrape.

    After each successful scrape the watermark is the local time of that
    scrape. It is compared to server side timestamps without any clock skew
    compensation.
    """

    family = "events"
    title = "Events"

    def __init__(self, namespace: str, environment: str, deployment: str,
                 clock: Callable[[], datetime] = utcnow):
        super().__init__(namespace, environment, deployment)
        self.clock = clock
        self.watermark = clock()
        self.info = self.gauge(
            "events", "info", "Labeled Cloud Foundry Events information with a constant '1' value.",
            ["type", "actor", "actor_type", "actor_name", "actor_username",
             "actee", "actee_type", "actee_name", "space_id", "organization_id"])

    def report(self, objs: Snapshot) -> bool:
        now = self.clock()
        for event in objs.events.values():
            if event.created_at is None or event.created_at <= self.watermark:
                continue
            user = objs.users.get(event.actor_guid)
            self.info.labels(
                event.type, event.actor_guid, event.actor_type, event.actor_name,
                user.username if user else "",
                event.target_guid, event.target_type, event.target_name,
                event.space_guid, event.org_guid,
            ).set(1)
        self.watermark = now
        return False
