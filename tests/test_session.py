import json
from datetime import datetime, timezone

import pytest
import requests
from werkzeug import Response

from cf_exporter.config import CFConfig
from cf_exporter.errors import ConnectError, FetchError, StaleResource
from cf_exporter.fetcher.session import Session

APP = {
    "guid": "app1",
    "name": "web",
    "state": "STARTED",
    "lifecycle": {"type": "buildpack", "data": {"buildpacks": ["nodejs_buildpack"], "stack": "cflinuxfs4"}},
    "relationships": {"space": {"data": {"guid": "sp1"}}, "current_droplet": {"data": {"guid": "dr1"}}},
}


class UAA:
    """Token endpoint handing out tok1, tok2, ... and recording every grant."""

    def __init__(self, expires_in=3600):
        self.expires_in = expires_in
        self.grants = []
        self.clients = []

    def __call__(self, request):
        self.grants.append(dict(request.form))
        auth = request.authorization
        self.clients.append((auth.username, auth.password) if auth else None)
        n = len(self.grants)
        body = {"access_token": f"tok{n}", "refresh_token": f"refresh{n}",
                "expires_in": self.expires_in, "token_type": "bearer"}
        return Response(json.dumps(body), content_type="application/json")


def page(resources, next_href=None):
    return {
        "pagination": {"total_results": len(resources), "next": {"href": next_href} if next_href else None},
        "resources": resources,
    }


@pytest.fixture
def uaa():
    return UAA()


@pytest.fixture
def cf(httpserver, uaa):
    httpserver.expect_request("/").respond_with_json(
        {"links": {"login": {"href": httpserver.url_for("/login")}, "uaa": {"href": httpserver.url_for("/uaa")}}})
    httpserver.expect_request("/login/oauth/token", method="POST").respond_with_handler(uaa)
    return httpserver


def config(server, **kw):
    params = dict(api_url=server.url_for("/"), username="admin", password="secret", deployment_name="cf")
    params.update(kw)
    return CFConfig(**params)


def test_password_grant_uses_cf_client(cf, uaa):
    s = Session(config(cf))
    assert s.token_url == cf.url_for("/login/oauth/token")
    assert uaa.grants == [{"grant_type": "password", "username": "admin", "password": "secret"}]
    assert uaa.clients == [("cf", "")]


def test_client_credentials_grant(cf, uaa):
    Session(config(cf, username="", password="", client_id="exporter", client_secret="s3cr3t"))
    assert uaa.grants == [{"grant_type": "client_credentials"}]
    assert uaa.clients == [("exporter", "s3cr3t")]


def test_uaa_link_is_used_without_login(httpserver, uaa):
    httpserver.expect_request("/").respond_with_json({"links": {"uaa": {"href": httpserver.url_for("/uaa")}}})
    httpserver.expect_request("/uaa/oauth/token", method="POST").respond_with_handler(uaa)
    s = Session(config(httpserver))
    assert s.token_url.endswith("/uaa/oauth/token")


def test_missing_login_link(httpserver):
    httpserver.expect_request("/").respond_with_json({"links": {}})
    with pytest.raises(ConnectError, match="login endpoint"):
        Session(config(httpserver))


def test_rejected_credentials(httpserver):
    httpserver.expect_request("/").respond_with_json({"links": {"login": {"href": httpserver.url_for("/login")}}})
    httpserver.expect_request("/login/oauth/token").respond_with_json({"error": "unauthorized"}, status=401)
    with pytest.raises(ConnectError, match="unable to authenticate"):
        Session(config(httpserver))


def test_unreachable_api():
    with pytest.raises(ConnectError, match="unable to reach cf api"):
        Session(CFConfig(api_url="http://127.0.0.1:1", username="u", password="p"), retries=0)


@pytest.fixture
def closed(monkeypatch):
    sessions = []
    monkeypatch.setattr(requests.Session, "close", lambda self: sessions.append(self))
    return sessions


def test_failed_discovery_closes_the_pool(httpserver, closed):
    httpserver.expect_request("/").respond_with_json({"links": {}})
    with pytest.raises(ConnectError):
        Session(config(httpserver))
    assert len(closed) == 1


def test_failed_authentication_closes_the_pool(httpserver, closed):
    httpserver.expect_request("/").respond_with_json({"links": {"login": {"href": httpserver.url_for("/login")}}})
    httpserver.expect_request("/login/oauth/token").respond_with_json({"error": "unauthorized"}, status=401)
    with pytest.raises(ConnectError):
        Session(config(httpserver))
    assert len(closed) == 1


def test_pagination_follows_next_links(cf):
    cf.expect_request("/v3/organizations", query_string={"per_page": "5000"},
                      headers={"Authorization": "Bearer tok1"}).respond_with_json(
        page([{"guid": "org1", "name": "Acme", "suspended": False,
               "relationships": {"quota": {"data": {"guid": "q1"}}}}],
             cf.url_for("/v3/organizations?page=2&per_page=5000")))
    cf.expect_request("/v3/organizations", query_string={"page": "2", "per_page": "5000"}).respond_with_json(
        page([{"guid": "org2", "name": "Globex", "suspended": True, "relationships": {"quota": {"data": None}}}],
             "/v3/organizations?page=3&per_page=5000"))
    cf.expect_request("/v3/organizations", query_string={"page": "3", "per_page": "5000"}).respond_with_json(
        page([]))

    orgs = Session(config(cf)).list_orgs()
    assert [o.guid for o in orgs] == ["org1", "org2"]
    assert orgs[0].quota_guid == "q1"
    assert orgs[1].suspended and orgs[1].quota_guid == ""


def test_listing_failure_names_endpoint(cf):
    cf.expect_request("/v3/stacks").respond_with_json({"errors": []}, status=403)
    with pytest.raises(FetchError) as exc:
        Session(config(cf)).list_stacks()
    assert exc.value.endpoint == "/v3/stacks"
    assert exc.value.status == 403


def test_rejected_token_is_renewed_once(cf, uaa):
    cf.expect_oneshot_request("/v3/stacks").respond_with_json({"errors": []}, status=401)
    cf.expect_request("/v3/stacks", headers={"Authorization": "Bearer tok2"}).respond_with_json(
        page([{"guid": "st1", "name": "cflinuxfs4"}]))

    stacks = Session(config(cf)).list_stacks()
    assert [s.name for s in stacks] == ["cflinuxfs4"]
    assert uaa.grants[-1] == {"grant_type": "refresh_token", "refresh_token": "refresh1"}


def test_token_is_renewed_before_expiry(httpserver):
    uaa = UAA(expires_in=30)
    httpserver.expect_request("/").respond_with_json({"links": {"login": {"href": httpserver.url_for("/login")}}})
    httpserver.expect_request("/login/oauth/token", method="POST").respond_with_handler(uaa)
    httpserver.expect_request("/v3/buildpacks").respond_with_json(page([]))

    s = Session(config(httpserver))
    s.list_buildpacks()
    assert len(uaa.grants) == 2


def test_apps_are_decoded(cf):
    cf.expect_request("/v3/apps").respond_with_json(page([APP]))
    app = Session(config(cf)).list_apps()[0]
    assert app.space_guid == "sp1"
    assert app.droplet_guid == "dr1"
    assert app.stack == "cflinuxfs4"


def test_tasks_default_states(cf):
    cf.expect_request("/v3/tasks", query_string={"per_page": "5000", "states": "PENDING,RUNNING,CANCELING"}
                      ).respond_with_json(page([{"guid": "t1", "state": "RUNNING", "memory_in_mb": 64,
                                                 "disk_in_mb": 128, "created_at": "2024-01-02T03:04:05Z",
                                                 "relationships": {"app": {"data": {"guid": "app1"}}}}]))
    task = Session(config(cf)).list_tasks()[0]
    assert task.app_guid == "app1"
    assert task.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_tasks_given_states(cf):
    cf.expect_request("/v3/tasks", query_string={"per_page": "5000", "states": "FAILED"}).respond_with_json(page([]))
    assert Session(config(cf)).list_tasks(["FAILED"]) == []


def test_events_query(cf):
    since = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
    cf.expect_request("/v3/audit_events", query_string={
        "per_page": "5000", "order_by": "-created_at", "created_ats[gt]": "2024-05-06T07:08:09Z",
    }).respond_with_json(page([{
        "guid": "ev1", "type": "audit.app.update", "created_at": "2024-05-06T07:09:00Z",
        "actor": {"guid": "u1", "type": "user", "name": "admin"},
        "target": {"guid": "app1", "type": "app", "name": "web"},
        "space": {"guid": "sp1"}, "organization": {"guid": "org1"},
    }]))
    ev = Session(config(cf)).list_events(since)[0]
    assert (ev.actor_guid, ev.target_name, ev.space_guid, ev.org_guid) == ("u1", "web", "sp1", "org1")


def test_space_summary(cf):
    cf.expect_request("/v2/spaces/sp1/summary").respond_with_json({
        "guid": "sp1", "name": "dev",
        "apps": [{"guid": "app1", "name": "web", "running_instances": 2, "detected_buildpack": "nodejs"}],
    })
    summary = Session(config(cf)).get_space_summary("sp1")
    assert summary.apps[0].running_instances == 2
    assert summary.apps[0].detected_buildpack == "nodejs"


def test_deleted_space_summary_is_stale(cf):
    cf.expect_request("/v2/spaces/gone/summary").respond_with_json({"code": 40004}, status=404)
    with pytest.raises(StaleResource):
        Session(config(cf)).get_space_summary("gone")


def test_info(cf):
    cf.expect_request("/v3/info").respond_with_json({"name": "prod-foundation", "build": "v1", "version": 3})
    assert Session(config(cf)).get_info().name == "prod-foundation"
