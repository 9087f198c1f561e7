from __future__ import annotations
import logging

from ..errors import EmitterError
from ..fetcher.snapshot import Snapshot
from ..models import Quota, Space
from .base import ObjectCollector
from .quotas import QuotaGauges

log = logging.getLogger(__name__)


class SpacesCollector(ObjectCollector):
    family = "spaces"
    title = "Spaces"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "space", "info", "Labeled Cloud Foundry Space information with a constant '1' value.",
            ["space_id", "space_name", "organization_id", "quota_name"])
        self.quotas = QuotaGauges(self, "space", "Space", ["space_id", "space_name", "organization_id"],
                                  skip=["total_private_domains_quota"])

    def report(self, objs: Snapshot) -> bool:
        failed = False
        for space in objs.spaces.values():
            try:
                self.report_space(space, objs)
            except EmitterError as err:
                log.warning("skipping space: %s", err)
                failed = True
        return failed

    def report_space(self, space: Space, objs: Snapshot) -> None:
        # spaces without a quota are only bound by their organization's
        quota = Quota(guid="", name="")
        if space.quota_guid:
            found = objs.space_quotas.get(space.quota_guid)
            if found is None:
                raise EmitterError(f"could not find quota '{space.quota_guid}' for space '{space.guid}'")
            quota = found
        self.info.labels(space.guid, space.name, space.org_guid, quota.name).set(1)
        self.quotas.set(quota, space.guid, space.name, space.org_guid)
