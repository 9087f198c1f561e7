from __future__ import annotations
from typing import Dict, Iterable

from .errors import ConfigError

APPLICATIONS = "applications"
BUILDPACKS = "buildpacks"
DOMAINS = "domains"
EVENTS = "events"
ISOLATION_SEGMENTS = "isolationsegments"
ORGANIZATIONS = "organizations"
ROUTES = "routes"
SECURITY_GROUPS = "securitygroups"
SERVICE_BINDINGS = "servicebindings"
SERVICE_ROUTE_BINDINGS = "serviceroutebindings"
SERVICE_INSTANCES = "serviceinstances"
SERVICE_PLANS = "serviceplans"
SERVICES = "services"
SPACES = "spaces"
STACKS = "stacks"
TASKS = "tasks"

ALL = (
    APPLICATIONS,
    BUILDPACKS,
    DOMAINS,
    EVENTS,
    ISOLATION_SEGMENTS,
    ORGANIZATIONS,
    ROUTES,
    SECURITY_GROUPS,
    SERVICE_BINDINGS,
    SERVICE_ROUTE_BINDINGS,
    SERVICE_INSTANCES,
    SERVICE_PLANS,
    SERVICES,
    SPACES,
    STACKS,
    TASKS,
)

# heavy and time-window dependent, opt-in only
DISABLED_BY_DEFAULT = frozenset({EVENTS, TASKS})


class Filter:
    """Allow-list of collector families.

    An empty token list enables every family but events and tasks; otherwise
    exactly the given (case-insensitive) tokens are enabled.
    """

    def __init__(self, *active: str):
        self._activated: Dict[str, bool] = {n: n not in DISABLED_BY_DEFAULT for n in ALL}
        if active:
            self._activated = self._parse(active)

    @staticmethod
    def _parse(active: Iterable[str]) -> Dict[str, bool]:
        activated = dict.fromkeys(ALL, False)
        for val in active:
            name = val.strip().lower()
            if name not in activated:
                raise ConfigError(f"Filter `{val}` is not supported")
            activated[name] = True
        return activated

    def enabled(self, name: str) -> bool:
        return self._activated.get(name, False)

    def any(self, *names: str) -> bool:
        return any(self.enabled(n) for n in names)

    def all(self, *names: str) -> bool:
        return all(self.enabled(n) for n in names)

    def active(self) -> list[str]:
        return [n for n in ALL if self._activated[n]]

    def __repr__(self) -> str:
        return f"Filter({', '.join(self.active())})"
