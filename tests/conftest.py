from __future__ import annotations
from typing import Dict, Optional

import pytest
from prometheus_client import CollectorRegistry

from cf_exporter.collectors import Collector
from cf_exporter.config import BBSConfig, CFConfig
from cf_exporter.errors import StaleResource
from cf_exporter.fetcher import Fetcher
from cf_exporter.filters import Filter
from cf_exporter.models import (
    ActualLRP, Application, Droplet, DropletBuildpack, Info, Organization, Process, Quota,
    Space, SpaceSummary, Stack,
)

ENVIRONMENT = "test"
DEPLOYMENT = "cf"
CONST = {"environment": ENVIRONMENT, "deployment": DEPLOYMENT}

PROC_GUID = "6a1e5a0b-3f2c-4e8d-9b7a-1c2d3e4f5a6b"


class StubSession:
    """In-process stand-in for fetcher.session.Session."""

    def __init__(self, stale_spaces=(), summaries: Optional[Dict[str, SpaceSummary]] = None, **data):
        self.data = data
        self.stale_spaces = set(stale_spaces)
        self.summaries = summaries or {}
        self.calls = []
        self.task_states = None
        self.events_since = None
        self.closed = False

    def _list(self, key):
        self.calls.append(key)
        value = self.data.get(key, [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    def get_info(self):
        return self.data.get("info", Info(name="test"))

    def list_orgs(self):
        return self._list("orgs")

    def list_org_quotas(self):
        return self._list("org_quotas")

    def list_spaces(self):
        return self._list("spaces")

    def list_space_quotas(self):
        return self._list("space_quotas")

    def list_apps(self):
        return self._list("apps")

    def list_processes(self):
        return self._list("processes")

    def list_droplets(self):
        return self._list("droplets")

    def list_tasks(self, states=None):
        self.task_states = states
        return self._list("tasks")

    def list_routes(self):
        return self._list("routes")

    def list_route_bindings(self):
        return self._list("route_bindings")

    def list_isolation_segments(self):
        return self._list("isolation_segments")

    def list_service_instances(self):
        return self._list("service_instances")

    def list_security_groups(self):
        return self._list("security_groups")

    def list_stacks(self):
        return self._list("stacks")

    def list_buildpacks(self):
        return self._list("buildpacks")

    def list_domains(self):
        return self._list("domains")

    def list_service_brokers(self):
        return self._list("service_brokers")

    def list_service_offerings(self):
        return self._list("service_offerings")

    def list_service_plans(self):
        return self._list("service_plans")

    def list_service_bindings(self):
        return self._list("service_bindings")

    def list_users(self):
        return self._list("users")

    def list_events(self, since):
        self.events_since = since
        return self._list("events")

    def get_space_summary(self, guid):
        self.calls.append(f"summary:{guid}")
        if guid in self.stale_spaces:
            raise StaleResource("space", guid)
        return self.summaries.get(guid, SpaceSummary(guid))

    def close(self):
        self.closed = True


class StubBBS:
    def __init__(self, lrps=()):
        self.lrps = list(lrps)
        self.closed = False

    def list_actual_lrps(self):
        return list(self.lrps)

    def close(self):
        self.closed = True


@pytest.fixture
def cf_config() -> CFConfig:
    return CFConfig(api_url="https://api.cf.example.com", username="admin", password="secret",
                    deployment_name=DEPLOYMENT)


def make_fetcher(session, filter: Optional[Filter] = None, bbs=None, threads: int = 4) -> Fetcher:
    cf = CFConfig(api_url="https://api.cf.example.com", client_id="exporter", client_secret="s",
                  deployment_name=DEPLOYMENT)
    bbs_config = BBSConfig(api_url="https://bbs.service.cf.internal:8889" if bbs is not None else "")

    def bbs_factory(_):
        if isinstance(bbs, Exception):
            raise bbs
        return bbs

    return Fetcher(threads, cf, bbs_config, filter or Filter(),
                   session_factory=lambda _: session, bbs_factory=bbs_factory)


def make_registry(session, filter: Optional[Filter] = None, bbs=None):
    flt = filter or Filter()
    registry = CollectorRegistry()
    collector = Collector("cf", ENVIRONMENT, DEPLOYMENT, make_fetcher(session, flt, bbs), flt)
    registry.register(collector)
    return registry, collector


def labels(**kw) -> Dict[str, str]:
    return {**kw, **CONST}


@pytest.fixture
def single_app_platform() -> dict:
    """One running app in org1/sp1 with a web process and a current droplet."""
    return dict(
        orgs=[Organization("org1", "Acme", relationships={"quota": "org_q"})],
        org_quotas=[Quota("org_q", "default", total_memory_mb=10240, instance_memory_mb=None)],
        spaces=[Space("sp1", "dev", {"organization": "org1", "quota": "sp_q"})],
        space_quotas=[Quota("sp_q", "small", total_memory_mb=2048, paid_services_allowed=True)],
        apps=[Application("app1", "web", state="STARTED", stack="cflinux",
                          relationships={"space": "sp1", "current_droplet": "dr1"})],
        processes=[Process(PROC_GUID, "web", instances=2, memory_mb=256, disk_mb=1024,
                           relationships={"app": "app1"})],
        droplets=[Droplet("dr1", [DropletBuildpack(name="nodejs_buildpack", buildpack_name="nodejs",
                                                   detect_output="nodejs")])],
        stacks=[Stack("st1", "cflinux")],
    )


@pytest.fixture
def lrps() -> list:
    return [
        ActualLRP(f"{PROC_GUID}-a7b1c2d3-0000-4000-8000-000000000001", 0, "i-1", "RUNNING"),
        ActualLRP(f"{PROC_GUID}-a7b1c2d3-0000-4000-8000-000000000001", 1, "i-2", "CRASHED"),
    ]
