from __future__ import annotations
import logging
from typing import Dict, Optional

from ..errors import EmitterError
from ..fetcher.snapshot import Snapshot
from ..models import Application
from .base import ObjectCollector

log = logging.getLogger(__name__)

LOCATION_LABELS = ["organization_id", "organization_name", "space_id", "space_name"]


class ApplicationsCollector(ObjectCollector):
    family = "applications"
    title = "Applications"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "application", "info",
            "Labeled Cloud Foundry Application information with a constant '1' value.",
            ["application_id", "application_name", "detected_buildpack", "buildpack",
             *LOCATION_LABELS, "stack_id", "state"])
        self.buildpack = self.gauge(
            "application", "buildpack",
            "Buildpack used by an Application.",
            ["application_id", "application_name", "buildpack_name", "detected_buildpack"])
        self.instances = self.gauge(
            "application", "instances",
            "Number of desired Cloud Foundry Application Instances.",
            ["application_id", "application_name", *LOCATION_LABELS, "state"])
        self.instances_running = self.gauge(
            "application", "instances_running",
            "Number of running Cloud Foundry Application Instances.",
            ["application_id", "application_name", *LOCATION_LABELS, "state"])
        self.memory_mb = self.gauge(
            "application", "memory_mb",
            "Cloud Foundry Application Memory (Mb).",
            ["application_id", "application_name", *LOCATION_LABELS])
        self.disk_quota_mb = self.gauge(
            "application", "disk_quota_mb",
            "Cloud Foundry Application Disk Quota (Mb).",
            ["application_id", "application_name", *LOCATION_LABELS])

    def report(self, objs: Snapshot) -> bool:
        stacks = {s.name: s.guid for s in objs.stacks.values()}
        failed = False
        for app in objs.apps.values():
            try:
                self.report_app(app, objs, stacks)
            except EmitterError as err:
                log.warning("skipping application: %s", err)
                failed = True
        return failed

    def report_app(self, app: Application, objs: Snapshot, stacks: Dict[str, str]) -> None:
        proc = objs.web_process(app.guid)
        if proc is None:
            raise EmitterError(f"could not find processes for application '{app.guid}'")
        space = objs.spaces.get(app.space_guid)
        if space is None:
            raise EmitterError(f"could not find space '{app.space_guid}' for application '{app.guid}'")
        org = objs.orgs.get(space.org_guid)
        if org is None:
            raise EmitterError(f"could not find organization '{space.org_guid}' for application '{app.guid}'")

        # docker apps have no stack, stacks are only known when that family is fetched
        stack_guid = stacks.get(app.stack, "")
        if app.stack and not stack_guid and stacks:
            raise EmitterError(f"could not find stack '{app.stack}' for application '{app.guid}'")

        droplet = objs.droplets.get(app.droplet_guid)
        bps = droplet.buildpacks if droplet else []
        detected = buildpack = ""
        if bps:
            detected, buildpack = bps[0].detect_output, bps[0].buildpack_name
        elif app.guid in objs.app_summaries:
            summary = objs.app_summaries[app.guid]
            detected, buildpack = summary.detected_buildpack, summary.buildpack
        detected = detected or buildpack
        buildpack = buildpack or detected

        location = (org.guid, org.name, space.guid, space.name)
        self.info.labels(app.guid, app.name, detected, buildpack, *location, stack_guid, app.state).set(1)
        for bp in bps:
            self.buildpack.labels(app.guid, app.name, bp.buildpack_name or bp.name, bp.detect_output).set(1)

        self.instances.labels(app.guid, app.name, *location, app.state).set(proc.instances)
        running = self._running_instances(proc.guid, app.guid, objs)
        if running is not None:
            self.instances_running.labels(app.guid, app.name, *location, app.state).set(running)
        self.memory_mb.labels(app.guid, app.name, *location).set(proc.memory_mb)
        self.disk_quota_mb.labels(app.guid, app.name, *location).set(proc.disk_mb)

    @staticmethod
    def _running_instances(process_guid: str, app_guid: str, objs: Snapshot) -> Optional[int]:
        if objs.process_actual_lrps:
            return sum(1 for lrp in objs.process_actual_lrps.get(process_guid, []) if lrp.state == "RUNNING")
        summary = objs.app_summaries.get(app_guid)
        return summary.running_instances if summary else None
