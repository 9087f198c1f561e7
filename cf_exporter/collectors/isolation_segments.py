from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class IsolationSegmentsCollector(ObjectCollector):
    family = "isolation_segments"
    title = "Isolation Segments"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "isolation_segment", "info",
            "Labeled Cloud Foundry Isolation Segment information with a constant '1' value.",
            ["isolation_segment_id", "isolation_segment_name"])

    def report(self, objs: Snapshot) -> bool:
        for seg in objs.isolation_segments.values():
            self.info.labels(seg.guid, seg.name).set(1)
        return False
