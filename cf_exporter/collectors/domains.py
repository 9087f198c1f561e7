from __future__ import annotations

from ..fetcher.snapshot import Snapshot
from .base import ObjectCollector


class DomainsCollector(ObjectCollector):
    family = "domains"
    title = "Domains"

    def __init__(self, namespace: str, environment: str, deployment: str):
        super().__init__(namespace, environment, deployment)
        self.info = self.gauge(
            "domain", "info", "Labeled Cloud Foundry Domain information with a constant '1' value.",
            ["domain_id", "domain_name", "internal", "protocol"])

    def report(self, objs: Snapshot) -> bool:
        # one sample per supported protocol, none for a domain without protocols
        for domain in objs.domains.values():
            internal = "true" if domain.internal else "false"
            for protocol in domain.protocols:
                self.info.labels(domain.guid, domain.name, internal, protocol).set(1)
        return False
