from __future__ import annotations
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .utils.convert import parse_time

Json = Dict[str, Any]

PROCESS_GUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")


def relationships(data: Json) -> Dict[str, str]:
    """Flatten {"space": {"data": {"guid": ..}}} into {"space": guid}; to-many links are skipped."""
    out: Dict[str, str] = {}
    for name, rel in (data.get("relationships") or {}).items():
        target = rel.get("data") if isinstance(rel, dict) else None
        if isinstance(target, dict) and target.get("guid"):
            out[name] = target["guid"]
    return out


def _ref(data: Json, key: str) -> str:
    return ((data.get(key) or {}).get("guid")) or ""


@dataclass
class Info:
    name: str = ""

    @classmethod
    def from_json(cls, d: Json) -> "Info":
        return cls(name=d.get("name") or "")


@dataclass
class Quota:
    """Organization or space quota. None means unlimited."""
    guid: str
    name: str
    total_memory_mb: Optional[int] = None
    instance_memory_mb: Optional[int] = None
    total_app_instances: Optional[int] = None
    total_app_tasks: Optional[int] = None
    paid_services_allowed: Optional[bool] = None
    total_service_instances: Optional[int] = None
    total_service_keys: Optional[int] = None
    total_routes: Optional[int] = None
    total_reserved_ports: Optional[int] = None
    total_private_domains: Optional[int] = None

    @classmethod
    def from_json(cls, d: Json) -> "Quota":
        apps = d.get("apps") or {}
        services = d.get("services") or {}
        routes = d.get("routes") or {}
        domains = d.get("domains") or {}
        return cls(
            guid=d["guid"], name=d.get("name") or "",
            total_memory_mb=apps.get("total_memory_in_mb"),
            instance_memory_mb=apps.get("per_process_memory_in_mb"),
            total_app_instances=apps.get("total_instances"),
            total_app_tasks=apps.get("per_app_tasks"),
            paid_services_allowed=services.get("paid_services_allowed"),
            total_service_instances=services.get("total_service_instances"),
            total_service_keys=services.get("total_service_keys"),
            total_routes=routes.get("total_routes"),
            total_reserved_ports=routes.get("total_reserved_ports"),
            total_private_domains=domains.get("total_domains"),
        )


@dataclass
class Organization:
    guid: str
    name: str
    suspended: bool = False
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def quota_guid(self) -> str:
        return self.relationships.get("quota", "")

    @classmethod
    def from_json(cls, d: Json) -> "Organization":
        return cls(d["guid"], d.get("name") or "", bool(d.get("suspended")), relationships(d))


@dataclass
class Space:
    guid: str
    name: str
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def org_guid(self) -> str:
        return self.relationships.get("organization", "")

    @property
    def quota_guid(self) -> str:
        return self.relationships.get("quota", "")

    @classmethod
    def from_json(cls, d: Json) -> "Space":
        return cls(d["guid"], d.get("name") or "", relationships(d))


@dataclass
class Application:
    guid: str
    name: str
    state: str = ""
    stack: str = ""
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def space_guid(self) -> str:
        return self.relationships.get("space", "")

    @property
    def droplet_guid(self) -> str:
        return self.relationships.get("current_droplet", "")

    @classmethod
    def from_json(cls, d: Json) -> "Application":
        ldata = (d.get("lifecycle") or {}).get("data") or {}
        return cls(
            guid=d["guid"], name=d.get("name") or "", state=d.get("state") or "",
            stack=ldata.get("stack") or "",
            relationships=relationships(d),
        )


@dataclass
class Process:
    guid: str
    type: str
    instances: int = 0
    memory_mb: int = 0
    disk_mb: int = 0
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def app_guid(self) -> str:
        return self.relationships.get("app", "")

    @classmethod
    def from_json(cls, d: Json) -> "Process":
        return cls(
            guid=d["guid"], type=d.get("type") or "",
            instances=d.get("instances") or 0,
            memory_mb=d.get("memory_in_mb") or 0,
            disk_mb=d.get("disk_in_mb") or 0,
            relationships=relationships(d),
        )


@dataclass
class DropletBuildpack:
    name: str = ""
    buildpack_name: str = ""
    detect_output: str = ""


@dataclass
class Droplet:
    guid: str
    buildpacks: List[DropletBuildpack] = field(default_factory=list)

    @classmethod
    def from_json(cls, d: Json) -> "Droplet":
        bps = [
            DropletBuildpack(
                name=b.get("name") or "", buildpack_name=b.get("buildpack_name") or "",
                detect_output=b.get("detect_output") or "",
            )
            for b in d.get("buildpacks") or []
        ]
        return cls(d["guid"], bps)


@dataclass
class Task:
    guid: str
    state: str
    created_at: Optional[datetime] = None
    memory_mb: int = 0
    disk_mb: int = 0
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def app_guid(self) -> str:
        return self.relationships.get("app", "")

    @classmethod
    def from_json(cls, d: Json) -> "Task":
        return cls(
            guid=d["guid"], state=d.get("state") or "",
            created_at=parse_time(d.get("created_at")),
            memory_mb=d.get("memory_in_mb") or 0,
            disk_mb=d.get("disk_in_mb") or 0,
            relationships=relationships(d),
        )


@dataclass
class Route:
    guid: str
    host: str = ""
    path: str = ""
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def domain_guid(self) -> str:
        return self.relationships.get("domain", "")

    @property
    def space_guid(self) -> str:
        return self.relationships.get("space", "")

    @classmethod
    def from_json(cls, d: Json) -> "Route":
        return cls(d["guid"], d.get("host") or "", d.get("path") or "", relationships(d))


@dataclass
class RouteBinding:
    guid: str
    route_service_url: str = ""
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def route_guid(self) -> str:
        return self.relationships.get("route", "")

    @property
    def service_instance_guid(self) -> str:
        return self.relationships.get("service_instance", "")

    @classmethod
    def from_json(cls, d: Json) -> "RouteBinding":
        return cls(d["guid"], d.get("route_service_url") or "", relationships(d))


@dataclass
class IsolationSegment:
    guid: str
    name: str

    @classmethod
    def from_json(cls, d: Json) -> "IsolationSegment":
        return cls(d["guid"], d.get("name") or "")


@dataclass
class ServiceInstance:
    guid: str
    name: str
    type: str = ""
    last_operation_type: str = ""
    last_operation_state: str = ""
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def space_guid(self) -> str:
        return self.relationships.get("space", "")

    @property
    def plan_guid(self) -> str:
        return self.relationships.get("service_plan", "")

    @classmethod
    def from_json(cls, d: Json) -> "ServiceInstance":
        op = d.get("last_operation") or {}
        return cls(
            guid=d["guid"], name=d.get("name") or "", type=d.get("type") or "",
            last_operation_type=op.get("type") or "", last_operation_state=op.get("state") or "",
            relationships=relationships(d),
        )


@dataclass
class SecurityGroup:
    guid: str
    name: str

    @classmethod
    def from_json(cls, d: Json) -> "SecurityGroup":
        return cls(d["guid"], d.get("name") or "")


@dataclass
class Stack:
    guid: str
    name: str

    @classmethod
    def from_json(cls, d: Json) -> "Stack":
        return cls(d["guid"], d.get("name") or "")


@dataclass
class Buildpack:
    guid: str
    name: str
    stack: str = ""
    filename: str = ""

    @classmethod
    def from_json(cls, d: Json) -> "Buildpack":
        return cls(d["guid"], d.get("name") or "", d.get("stack") or "", d.get("filename") or "")


@dataclass
class Domain:
    guid: str
    name: str
    internal: bool = False
    protocols: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, d: Json) -> "Domain":
        return cls(d["guid"], d.get("name") or "", bool(d.get("internal")),
                   list(d.get("supported_protocols") or []))


@dataclass
class ServiceBroker:
    guid: str
    name: str

    @classmethod
    def from_json(cls, d: Json) -> "ServiceBroker":
        return cls(d["guid"], d.get("name") or "")


@dataclass
class ServiceOffering:
    guid: str
    name: str
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def broker_guid(self) -> str:
        return self.relationships.get("service_broker", "")

    @classmethod
    def from_json(cls, d: Json) -> "ServiceOffering":
        return cls(d["guid"], d.get("name") or "", relationships(d))


@dataclass
class ServicePlan:
    guid: str
    name: str
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def offering_guid(self) -> str:
        return self.relationships.get("service_offering", "")

    @classmethod
    def from_json(cls, d: Json) -> "ServicePlan":
        return cls(d["guid"], d.get("name") or "", relationships(d))


@dataclass
class ServiceBinding:
    guid: str
    type: str = ""
    relationships: Dict[str, str] = field(default_factory=dict)

    @property
    def app_guid(self) -> str:
        return self.relationships.get("app", "")

    @property
    def service_instance_guid(self) -> str:
        return self.relationships.get("service_instance", "")

    @classmethod
    def from_json(cls, d: Json) -> "ServiceBinding":
        return cls(d["guid"], d.get("type") or "", relationships(d))


@dataclass
class User:
    guid: str
    username: str = ""

    @classmethod
    def from_json(cls, d: Json) -> "User":
        return cls(d["guid"], d.get("username") or "")


@dataclass
class Event:
    guid: str
    type: str
    created_at: Optional[datetime] = None
    actor_guid: str = ""
    actor_type: str = ""
    actor_name: str = ""
    target_guid: str = ""
    target_type: str = ""
    target_name: str = ""
    space_guid: str = ""
    org_guid: str = ""

    @classmethod
    def from_json(cls, d: Json) -> "Event":
        actor = d.get("actor") or {}
        target = d.get("target") or {}
        return cls(
            guid=d["guid"], type=d.get("type") or "",
            created_at=parse_time(d.get("created_at")),
            actor_guid=actor.get("guid") or "", actor_type=actor.get("type") or "",
            actor_name=actor.get("name") or "",
            target_guid=target.get("guid") or "", target_type=target.get("type") or "",
            target_name=target.get("name") or "",
            space_guid=_ref(d, "space"), org_guid=_ref(d, "organization"),
        )


@dataclass
class AppSummary:
    guid: str
    running_instances: int = 0
    detected_buildpack: str = ""
    buildpack: str = ""

    @classmethod
    def from_json(cls, d: Json) -> "AppSummary":
        return cls(
            guid=d["guid"],
            running_instances=d.get("running_instances") or 0,
            detected_buildpack=d.get("detected_buildpack") or "",
            buildpack=d.get("buildpack") or "",
        )


@dataclass
class SpaceSummary:
    guid: str
    name: str = ""
    apps: List[AppSummary] = field(default_factory=list)

    @classmethod
    def from_json(cls, d: Json) -> "SpaceSummary":
        return cls(d.get("guid") or "", d.get("name") or "",
                   [AppSummary.from_json(a) for a in d.get("apps") or [] if a.get("guid")])


@dataclass
class ActualLRP:
    process_guid: str
    index: int = 0
    instance_guid: str = ""
    state: str = ""

    @property
    def app_process_guid(self) -> str:
        """Diego appends the process version to the CC process guid."""
        m = PROCESS_GUID_RE.match(self.process_guid)
        return m.group(0) if m else self.process_guid

    @classmethod
    def from_json(cls, d: Json) -> "ActualLRP":
        key = d.get("actual_lrp_key") or {}
        ikey = d.get("actual_lrp_instance_key") or {}
        return cls(
            process_guid=d.get("process_guid") or key.get("process_guid") or "",
            index=d.get("index", key.get("index")) or 0,
            instance_guid=d.get("instance_guid") or ikey.get("instance_guid") or "",
            state=d.get("state") or "",
        )
