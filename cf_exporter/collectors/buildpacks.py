from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class BuildpacksCollector(ObjectCollector):
    family = "buildpacks"
    title = "Buildpacks"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "buildpack", "info", "Labeled Cloud Foundry Buildpack information with a constant '1' value.",
            ["buildpack_id", "buildpack_name", "buildpack_stack", "buildpack_filename"])

    def report(self, objs: Snapshot) -> bool:
        for bp in objs.buildpacks.values():
            self.info.labels(bp.guid, bp.name, bp.stack, bp.filename).set(1)
        return False
