from __future__ import annotations
import logging, threading, time
from datetime import timedelta
from functools import partial
from typing import Callable, Dict, Iterable, Optional, Sequence

from .. import filters
from ..config import BBSConfig, CFConfig
from ..errors import ConnectError, FetchError, StaleResource
from ..filters import Filter
from ..utils.convert import utcnow
from .bbs import BBSClient
from .session import Session
from .snapshot import Snapshot
from .worker import Worker

log = logging.getLogger(__name__)

EVENTS_WINDOW = timedelta(minutes=15)


def index(target: Dict, items: Iterable) -> None:
    for item in items:
        target[item.guid] = item


class Fetcher:
    """Builds one Snapshot per call to get_objects().

    Only the endpoints needed by the enabled collector families are queried.
    """

    def __init__(self, threads: int, cf: CFConfig, bbs: BBSConfig, filter: Filter,
                 task_states: Optional[Sequence[str]] = None,
                 session_factory: Optional[Callable[[CFConfig], Session]] = None,
                 bbs_factory: Callable[[BBSConfig], BBSClient] = BBSClient):
        self.cf = cf
        self.bbs = bbs
        self.filter = filter
        self.task_states = tuple(task_states or ())
        self.session_factory = session_factory or partial(Session, pool_size=threads)
        self.bbs_factory = bbs_factory
        self.lock = threading.Lock()
        self.worker = Worker(threads, filter)

    def work_init(self, bbs: Optional[BBSClient] = None) -> None:
        w = self.worker
        w.reset()
        w.push("info", self.fetch_info)
        w.push_if("organizations", self.fetch_orgs, filters.APPLICATIONS, filters.ORGANIZATIONS)
        w.push_if("org_quotas", self.fetch_org_quotas, filters.ORGANIZATIONS)
        w.push_if("spaces", self.fetch_spaces, filters.APPLICATIONS, filters.SPACES)
        w.push_if("space_quotas", self.fetch_space_quotas, filters.SPACES)
        w.push_if("applications", self.fetch_apps, filters.APPLICATIONS)
        w.push_if("droplets", self.fetch_droplets, filters.APPLICATIONS)
        w.push_if("domains", self.fetch_domains, filters.DOMAINS)
        w.push_if("processes", self.fetch_processes, filters.APPLICATIONS)
        w.push_if("routes", self.fetch_routes, filters.ROUTES)
        w.push_if("route_bindings", self.fetch_route_bindings, filters.ROUTES)
        w.push_if("security_groups", self.fetch_security_groups, filters.SECURITY_GROUPS)
        w.push_if("stacks", self.fetch_stacks, filters.STACKS)
        w.push_if("buildpacks", self.fetch_buildpacks, filters.BUILDPACKS)
        w.push_if("tasks", self.fetch_tasks, filters.TASKS)
        w.push_if("service_brokers", self.fetch_service_brokers, filters.SERVICES)
        w.push_if("service_offerings", self.fetch_service_offerings, filters.SERVICES)
        w.push_if("service_instances", self.fetch_service_instances, filters.SERVICE_INSTANCES)
        w.push_if("service_plans", self.fetch_service_plans, filters.SERVICE_PLANS)
        w.push_if("service_bindings", self.fetch_service_bindings, filters.SERVICE_BINDINGS)
        w.push_if("service_route_bindings", self.fetch_service_route_bindings, filters.SERVICE_ROUTE_BINDINGS)
        w.push_if("isolation_segments", self.fetch_isolation_segments, filters.ISOLATION_SEGMENTS)
        w.push_if("users", self.fetch_users, filters.EVENTS)
        w.push_if("events", self.fetch_events, filters.EVENTS)
        w.push("actual_lrps", partial(self.fetch_actual_lrps, bbs))

    def get_objects(self) -> Snapshot:
        started = time.monotonic()
        result = Snapshot()

        session = bbs = None
        try:
            session = self.session_factory(self.cf)
            if self.bbs.api_url:
                bbs = self.bbs_factory(self.bbs)
        except ConnectError as err:
            log.error("unable to connect: %s", err)
            result.error = err
            result.took = time.monotonic() - started
            if session is not None:
                session.close()
            return result

        try:
            self.work_init(bbs)
            result.error = self.worker.do(session, result)
        finally:
            session.close()
            if bbs is not None:
                bbs.close()
        result.took = time.monotonic() - started
        log.debug("fetched cf objects in %.3fs (error: %s)", result.took, result.error)
        return result

    # --- job handlers, called concurrently from worker threads

    def fetch_info(self, session: Session, result: Snapshot) -> None:
        info = session.get_info()
        with self.lock:
            result.info = info

    def fetch_orgs(self, session: Session, result: Snapshot) -> None:
        orgs = session.list_orgs()
        with self.lock:
            index(result.orgs, orgs)

    def fetch_org_quotas(self, session: Session, result: Snapshot) -> None:
        quotas = session.list_org_quotas()
        with self.lock:
            index(result.org_quotas, quotas)

    def fetch_spaces(self, session: Session, result: Snapshot) -> None:
        spaces = session.list_spaces()
        with self.lock:
            index(result.spaces, spaces)
        total = len(spaces)
        for idx, space in enumerate(spaces, 1):
            name = f"space_summary {idx:04d}/{total:04d} ({space.guid})"
            self.worker.push_if(name, partial(self.fetch_space_summary, space.guid), filters.APPLICATIONS)

    def fetch_space_summary(self, guid: str, session: Session, result: Snapshot) -> None:
        try:
            summary = session.get_space_summary(guid)
        except StaleResource as err:
            log.warning("skipping space summary: %s", err)
            return
        except FetchError as err:
            # running instance counts are best effort, the apps job owns the inventory
            log.warning("unable to fetch summary of space '%s': %s", guid, err)
            return
        with self.lock:
            result.space_summaries[guid] = summary
            for app in summary.apps:
                result.app_summaries[app.guid] = app

    def fetch_space_quotas(self, session: Session, result: Snapshot) -> None:
        quotas = session.list_space_quotas()
        with self.lock:
            index(result.space_quotas, quotas)

    def fetch_apps(self, session: Session, result: Snapshot) -> None:
        apps = session.list_apps()
        with self.lock:
            index(result.apps, apps)

    def fetch_droplets(self, session: Session, result: Snapshot) -> None:
        droplets = session.list_droplets()
        with self.lock:
            index(result.droplets, droplets)

    def fetch_processes(self, session: Session, result: Snapshot) -> None:
        processes = session.list_processes()
        with self.lock:
            index(result.processes, processes)
            for proc in processes:
                result.app_processes.setdefault(proc.app_guid, []).append(proc)

    def fetch_tasks(self, session: Session, result: Snapshot) -> None:
        tasks = session.list_tasks(self.task_states or None)
        with self.lock:
            index(result.tasks, tasks)

    def fetch_routes(self, session: Session, result: Snapshot) -> None:
        routes = session.list_routes()
        with self.lock:
            index(result.routes, routes)

    def fetch_route_bindings(self, session: Session, result: Snapshot) -> None:
        bindings = session.list_route_bindings()
        with self.lock:
            for b in bindings:
                result.route_bindings[b.route_guid] = b

    def fetch_service_route_bindings(self, session: Session, result: Snapshot) -> None:
        bindings = session.list_route_bindings()
        with self.lock:
            index(result.service_route_bindings, bindings)

    def fetch_isolation_segments(self, session: Session, result: Snapshot) -> None:
        segments = session.list_isolation_segments()
        with self.lock:
            index(result.isolation_segments, segments)

    def fetch_service_instances(self, session: Session, result: Snapshot) -> None:
        instances = session.list_service_instances()
        with self.lock:
            index(result.service_instances, instances)

    def fetch_security_groups(self, session: Session, result: Snapshot) -> None:
        groups = session.list_security_groups()
        with self.lock:
            index(result.security_groups, groups)

    def fetch_stacks(self, session: Session, result: Snapshot) -> None:
        stacks = session.list_stacks()
        with self.lock:
            index(result.stacks, stacks)

    def fetch_buildpacks(self, session: Session, result: Snapshot) -> None:
        buildpacks = session.list_buildpacks()
        with self.lock:
            index(result.buildpacks, buildpacks)

    def fetch_domains(self, session: Session, result: Snapshot) -> None:
        domains = session.list_domains()
        with self.lock:
            index(result.domains, domains)

    def fetch_service_brokers(self, session: Session, result: Snapshot) -> None:
        brokers = session.list_service_brokers()
        with self.lock:
            index(result.service_brokers, brokers)

    def fetch_service_offerings(self, session: Session, result: Snapshot) -> None:
        offerings = session.list_service_offerings()
        with self.lock:
            index(result.service_offerings, offerings)

    def fetch_service_plans(self, session: Session, result: Snapshot) -> None:
        plans = session.list_service_plans()
        with self.lock:
            index(result.service_plans, plans)

    def fetch_service_bindings(self, session: Session, result: Snapshot) -> None:
        bindings = session.list_service_bindings()
        with self.lock:
            index(result.service_bindings, bindings)

    def fetch_users(self, session: Session, result: Snapshot) -> None:
        users = session.list_users()
        with self.lock:
            index(result.users, users)

    def fetch_events(self, session: Session, result: Snapshot) -> None:
        events = session.list_events(utcnow() - EVENTS_WINDOW)
        with self.lock:
            index(result.events, events)

    def fetch_actual_lrps(self, bbs: Optional[BBSClient], session: Session, result: Snapshot) -> None:
        if bbs is None:
            return
        lrps = bbs.list_actual_lrps()
        with self.lock:
            for lrp in lrps:
                result.process_actual_lrps.setdefault(lrp.app_process_guid, []).append(lrp)
