from __future__ import annotations
from typing import Dict, List, Optional

from ..models import (
    ActualLRP, AppSummary, Application, Buildpack, Domain, Droplet, Event, Info,
    IsolationSegment, Organization, Process, Quota, Route, RouteBinding, SecurityGroup,
    ServiceBinding, ServiceBroker, ServiceInstance, ServiceOffering, ServicePlan,
    Space, SpaceSummary, Stack, Task, User,
)


class Snapshot:
    """Everything fetched during one scrape, cross-indexed by guid.

    Written by fetcher workers under Fetcher.lock, read-only once returned.
    """

    def __init__(self):
        self.info = Info()
        self.orgs: Dict[str, Organization] = {}
        self.org_quotas: Dict[str, Quota] = {}
        self.spaces: Dict[str, Space] = {}
        self.space_quotas: Dict[str, Quota] = {}
        self.apps: Dict[str, Application] = {}
        self.processes: Dict[str, Process] = {}
        self.droplets: Dict[str, Droplet] = {}
        self.tasks: Dict[str, Task] = {}
        self.routes: Dict[str, Route] = {}
        # keyed by route guid
        self.route_bindings: Dict[str, RouteBinding] = {}
        # keyed by binding guid
        self.service_route_bindings: Dict[str, RouteBinding] = {}
        self.isolation_segments: Dict[str, IsolationSegment] = {}
        self.service_instances: Dict[str, ServiceInstance] = {}
        self.security_groups: Dict[str, SecurityGroup] = {}
        self.stacks: Dict[str, Stack] = {}
        self.buildpacks: Dict[str, Buildpack] = {}
        self.domains: Dict[str, Domain] = {}
        self.service_brokers: Dict[str, ServiceBroker] = {}
        self.service_offerings: Dict[str, ServiceOffering] = {}
        self.service_plans: Dict[str, ServicePlan] = {}
        self.service_bindings: Dict[str, ServiceBinding] = {}
        self.users: Dict[str, User] = {}
        self.events: Dict[str, Event] = {}

        self.app_processes: Dict[str, List[Process]] = {}
        self.space_summaries: Dict[str, SpaceSummary] = {}
        self.app_summaries: Dict[str, AppSummary] = {}
        self.process_actual_lrps: Dict[str, List[ActualLRP]] = {}

        self.took: float = 0.0
        self.error: Optional[Exception] = None

    def web_process(self, app_guid: str) -> Optional[Process]:
        procs = self.app_processes.get(app_guid)
        if not procs:
            return None
        for p in procs:
            if p.type == "web":
                return p
        return procs[0]
