from __future__ import annotations
import logging

from ..errors import EmitterError
from ..fetcher.snapshot import Snapshot
from ..models import Organization, Quota
from .base import ObjectCollector
from .quotas import QuotaGauges

log = logging.getLogger(__name__)


class OrganizationsCollector(ObjectCollector):
    family = "organizations"
    title = "Organizations"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "organization", "info",
            "Labeled Cloud Foundry Organization information with a constant '1' value.",
            ["organization_id", "organization_name", "quota_name", "suspended"])
        self.quotas = QuotaGauges(self, "organization", "Organization",
                                  ["organization_id", "organization_name"])

    def report(self, objs: Snapshot) -> bool:
        failed = False
        for org in objs.orgs.values():
            try:
                self.report_org(org, objs)
            except EmitterError as err:
                log.warning("skipping organization: %s", err)
                failed = True
        return failed

    def report_org(self, org: Organization, objs: Snapshot) -> None:
        quota = Quota(guid="", name="")
        if org.quota_guid:
            found = objs.org_quotas.get(org.quota_guid)
            if found is None:
                raise EmitterError(f"could not find quota '{org.quota_guid}' for organization '{org.guid}'")
            quota = found
        suspended = "true" if org.suspended else "false"
        self.info.labels(org.guid, org.name, quota.name, suspended).set(1)
        self.quotas.set(quota, org.guid, org.name)
