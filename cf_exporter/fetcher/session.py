from __future__ import annotations
import logging, threading, time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar
from urllib.parse import urljoin

import orjson
import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .. import __version__
from ..config import CFConfig
from ..errors import ConnectError, FetchError, StaleResource
from ..models import (
    Application, Buildpack, Domain, Droplet, Event, Info, IsolationSegment, Organization,
    Process, Quota, Route, RouteBinding, SecurityGroup, ServiceBinding, ServiceBroker,
    ServiceInstance, ServiceOffering, ServicePlan, Space, SpaceSummary, Stack, Task, User,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_SIZE = 5000
DEFAULT_RETRIES = 2
DEFAULT_TIMEOUT = 60.0
TOKEN_RENEW_MARGIN = 60.0
DEFAULT_TASK_STATES = ("PENDING", "RUNNING", "CANCELING")
EVENT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
USER_AGENT = f"cf_exporter/{__version__}"


def requests_session(retries: int = DEFAULT_RETRIES, pool_size: int = 10) -> requests.Session:
    s = requests.Session()
    policy = Retry(
        total=retries,
        backoff_factor=0.3,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=policy, pool_connections=pool_size, pool_maxsize=pool_size)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT
    s.hooks["response"].append(_log_response)
    return s


def _log_response(resp: requests.Response, *args, **kwargs) -> None:
    log.debug("%s %s -> %d (%.3fs)", resp.request.method, resp.url, resp.status_code,
              resp.elapsed.total_seconds())


def decode(resp: requests.Response) -> Dict[str, Any]:
    return orjson.loads(resp.content) if resp.content else {}


class TokenAuth(requests.auth.AuthBase):
    """Attach the session's current bearer token to every request."""

    def __init__(self, session: "Session"):
        self.session = session

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self.session.access_token()}"
        return r


class Session:
    """Authenticated, paginated client for the Cloud Controller.

    Thread safe: one instance is shared by every fetch worker. The UAA
    token is cached and renewed shortly before it expires.
    """

    def __init__(self, config: CFConfig, page_size: int = PAGE_SIZE, retries: int = DEFAULT_RETRIES,
                 timeout: float = DEFAULT_TIMEOUT, pool_size: int = 10):
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self.http = requests_session(retries, pool_size)
        self.http.verify = not config.skip_ssl_verify
        if config.skip_ssl_verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._expires_at = 0.0

        try:
            self._connect()
        except ConnectError:
            self.http.close()
            raise
        self.http.auth = TokenAuth(self)

    def _connect(self) -> None:
        self.token_url = self._discover() + "/oauth/token"
        try:
            self._renew()
        except (requests.RequestException, ValueError) as err:
            raise ConnectError(f"unable to authenticate against '{self.token_url}': {err}") from err

    def _discover(self) -> str:
        try:
            resp = self.http.get(self.api_url + "/", timeout=self.timeout)
            resp.raise_for_status()
            links = decode(resp).get("links") or {}
        except (requests.RequestException, ValueError) as err:
            raise ConnectError(f"unable to reach cf api '{self.api_url}': {err}") from err
        login = (links.get("login") or links.get("uaa") or {}).get("href")
        if not login:
            raise ConnectError(f"cf api '{self.api_url}' does not advertise a login endpoint")
        return login.rstrip("/")

    # --- token handling

    def _grant(self) -> Dict[str, str]:
        if self._refresh_token:
            return {"grant_type": "refresh_token", "refresh_token": self._refresh_token}
        if self.config.username:
            return {"grant_type": "password", "username": self.config.username,
                    "password": self.config.password}
        return {"grant_type": "client_credentials"}

    def _client_auth(self):
        if self.config.username:
            return (self.config.client_id or "cf", self.config.client_secret or "")
        return (self.config.client_id, self.config.client_secret)

    def _request_token(self, grant: Dict[str, str]) -> Dict[str, Any]:
        resp = self.http.post(self.token_url, data=grant, auth=self._client_auth(),
                              headers={"Accept": "application/json"}, timeout=self.timeout)
        resp.raise_for_status()
        return decode(resp)

    def _renew(self) -> None:
        grant = self._grant()
        try:
            payload = self._request_token(grant)
        except requests.HTTPError:
            if grant["grant_type"] != "refresh_token":
                raise
            log.info("token refresh rejected, requesting a new token")
            self._refresh_token = None
            payload = self._request_token(self._grant())
        if not payload.get("access_token"):
            raise ValueError("token endpoint returned no access_token")
        self._token = payload["access_token"]
        self._refresh_token = payload.get("refresh_token") or None
        self._expires_at = time.time() + float(payload.get("expires_in") or 0)

    def access_token(self, force: bool = False) -> str:
        with self._lock:
            if force or self._token is None or time.time() >= self._expires_at - TOKEN_RENEW_MARGIN:
                self._renew()
            return self._token

    # --- raw requests

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        endpoint = url.replace(self.api_url, "", 1)
        try:
            resp = self.http.get(url, params=params, timeout=self.timeout)
            if resp.status_code == 401:
                log.debug("token rejected on %s, renewing", endpoint)
                self.access_token(force=True)
                resp = self.http.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as err:
            raise FetchError(endpoint, str(err)) from err
        return resp

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self._get(self._url(path), params)
        if resp.status_code != 200:
            raise FetchError(path, resp.reason or "", resp.status_code)
        try:
            return decode(resp)
        except orjson.JSONDecodeError as err:
            raise FetchError(path, f"invalid json: {err}") from err

    def _url(self, path: str) -> str:
        return urljoin(self.api_url + "/", path)

    def paginate(self, path: str, model: Type[T], params: Optional[Dict[str, Any]] = None) -> List[T]:
        """Collect every page of a v3 listing."""
        res: List[T] = []
        url: Optional[str] = path
        query: Optional[Dict[str, Any]] = {"per_page": self.page_size, **(params or {})}
        while url:
            page = self.get_json(url, query)
            res.extend(model.from_json(r) for r in page.get("resources") or [])
            nxt = ((page.get("pagination") or {}).get("next") or {}).get("href")
            # next href carries the full query string
            url, query = (self._url(nxt), None) if nxt else (None, None)
        return res

    # --- per entity helpers

    def get_info(self) -> Info:
        return Info.from_json(self.get_json("/v3/info"))

    def list_orgs(self) -> List[Organization]:
        return self.paginate("/v3/organizations", Organization)

    def list_org_quotas(self) -> List[Quota]:
        return self.paginate("/v3/organization_quotas", Quota)

    def list_spaces(self) -> List[Space]:
        return self.paginate("/v3/spaces", Space)

    def list_space_quotas(self) -> List[Quota]:
        return self.paginate("/v3/space_quotas", Quota)

    def list_apps(self) -> List[Application]:
        return self.paginate("/v3/apps", Application)

    def list_processes(self) -> List[Process]:
        return self.paginate("/v3/processes", Process)

    def list_droplets(self) -> List[Droplet]:
        return self.paginate("/v3/droplets", Droplet)

    def list_tasks(self, states: Optional[Iterable[str]] = None) -> List[Task]:
        states = list(states or DEFAULT_TASK_STATES)
        return self.paginate("/v3/tasks", Task, {"states": ",".join(states)})

    def list_routes(self) -> List[Route]:
        return self.paginate("/v3/routes", Route)

    def list_route_bindings(self) -> List[RouteBinding]:
        return self.paginate("/v3/service_route_bindings", RouteBinding)

    def list_isolation_segments(self) -> List[IsolationSegment]:
        return self.paginate("/v3/isolation_segments", IsolationSegment)

    def list_service_instances(self) -> List[ServiceInstance]:
        return self.paginate("/v3/service_instances", ServiceInstance)

    def list_security_groups(self) -> List[SecurityGroup]:
        return self.paginate("/v3/security_groups", SecurityGroup)

    def list_stacks(self) -> List[Stack]:
        return self.paginate("/v3/stacks", Stack)

    def list_buildpacks(self) -> List[Buildpack]:
        return self.paginate("/v3/buildpacks", Buildpack)

    def list_domains(self) -> List[Domain]:
        return self.paginate("/v3/domains", Domain)

    def list_service_brokers(self) -> List[ServiceBroker]:
        return self.paginate("/v3/service_brokers", ServiceBroker)

    def list_service_offerings(self) -> List[ServiceOffering]:
        return self.paginate("/v3/service_offerings", ServiceOffering)

    def list_service_plans(self) -> List[ServicePlan]:
        return self.paginate("/v3/service_plans", ServicePlan)

    def list_service_bindings(self) -> List[ServiceBinding]:
        return self.paginate("/v3/service_credential_bindings", ServiceBinding)

    def list_users(self) -> List[User]:
        return self.paginate("/v3/users", User)

    def list_events(self, since: datetime) -> List[Event]:
        params = {"order_by": "-created_at", "created_ats[gt]": since.strftime(EVENT_TIME_FORMAT)}
        return self.paginate("/v3/audit_events", Event, params)

    def get_space_summary(self, guid: str) -> SpaceSummary:
        path = f"/v2/spaces/{guid}/summary"
        resp = self._get(self._url(path))
        if resp.status_code == 404:
            raise StaleResource("space", guid)
        if resp.status_code != 200:
            raise FetchError(path, resp.reason or "", resp.status_code)
        try:
            return SpaceSummary.from_json(decode(resp))
        except orjson.JSONDecodeError as err:
            raise FetchError(path, f"invalid json: {err}") from err

    def close(self) -> None:
        self.http.close()

