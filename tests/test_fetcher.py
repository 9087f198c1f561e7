from datetime import timedelta

import pytest

from cf_exporter.errors import ConnectError, FetchError
from cf_exporter.filters import Filter
from cf_exporter.models import Organization, Space, SpaceSummary, AppSummary, Route, RouteBinding
from cf_exporter.utils.convert import utcnow

from conftest import PROC_GUID, StubBBS, StubSession, make_fetcher

DEFAULT_JOBS = {
    "info", "organizations", "org_quotas", "spaces", "space_quotas", "applications", "droplets",
    "domains", "processes", "routes", "route_bindings", "security_groups", "stacks", "buildpacks",
    "service_brokers", "service_offerings", "service_instances", "service_plans", "service_bindings",
    "service_route_bindings", "isolation_segments", "actual_lrps",
}


def planned(flt):
    fetcher = make_fetcher(StubSession(), flt)
    fetcher.work_init()
    return fetcher.worker.planned()


@pytest.mark.parametrize("flt, expected", [
    (Filter("buildpacks"), {"info", "actual_lrps", "buildpacks"}),
    (Filter("spaces"), {"info", "actual_lrps", "spaces", "space_quotas"}),
    (Filter("events"), {"info", "actual_lrps", "users", "events"}),
    (Filter("tasks"), {"info", "actual_lrps", "tasks"}),
    (Filter("applications"), {"info", "actual_lrps", "organizations", "spaces", "applications",
                              "droplets", "processes"}),
    (Filter(), DEFAULT_JOBS),
])
def test_planner(flt, expected):
    names = planned(flt)
    assert set(names) == expected
    assert len(names) == len(expected)


def test_planner_is_monotonic():
    small = set(planned(Filter("spaces")))
    large = set(planned(Filter("spaces", "applications")))
    assert small <= large


def test_get_objects_indexes_everything(single_app_platform, lrps):
    session = StubSession(**single_app_platform)
    objs = make_fetcher(session, bbs=StubBBS(lrps)).get_objects()

    assert objs.error is None
    assert objs.took >= 0
    assert objs.info.name == "test"
    assert set(objs.orgs) == {"org1"}
    assert set(objs.spaces) == {"sp1"}
    assert set(objs.apps) == {"app1"}
    assert [p.guid for p in objs.app_processes["app1"]] == [PROC_GUID]
    assert len(objs.process_actual_lrps[PROC_GUID]) == 2
    assert "sp1" in objs.space_summaries
    assert session.closed


def test_space_summaries_are_fanned_out_and_stale_spaces_skipped():
    summary = SpaceSummary("sp1", "dev", [AppSummary("app1", running_instances=3)])
    session = StubSession(
        spaces=[Space("sp1", "dev", {"organization": "org1"}), Space("sp2", "gone", {"organization": "org1"})],
        orgs=[Organization("org1", "Acme")],
        stale_spaces={"sp2"},
        summaries={"sp1": summary},
    )
    objs = make_fetcher(session, Filter("applications")).get_objects()

    assert objs.error is None
    assert set(objs.spaces) == {"sp1", "sp2"}
    assert set(objs.space_summaries) == {"sp1"}
    assert objs.app_summaries["app1"].running_instances == 3
    assert {"summary:sp1", "summary:sp2"} <= set(session.calls)


def test_no_space_summaries_without_applications():
    session = StubSession(spaces=[Space("sp1", "dev", {"organization": "org1"})])
    make_fetcher(session, Filter("spaces")).get_objects()
    assert "summary:sp1" not in session.calls


def test_first_fetch_error_is_reported():
    err = FetchError("/v3/apps", "Internal Server Error", 500)
    session = StubSession(apps=err)
    objs = make_fetcher(session, Filter("applications")).get_objects()
    assert objs.error is err
    # sibling jobs still ran
    assert "orgs" in session.calls and "spaces" in session.calls


def test_session_connect_error():
    err = ConnectError("no route to host")

    def factory(_):
        raise err

    fetcher = make_fetcher(StubSession())
    fetcher.session_factory = factory
    objs = fetcher.get_objects()
    assert objs.error is err
    assert objs.apps == {}


def test_bbs_connect_error_closes_session():
    session = StubSession()
    objs = make_fetcher(session, bbs=ConnectError("bbs down")).get_objects()
    assert isinstance(objs.error, ConnectError)
    assert session.closed


def test_route_bindings_are_keyed_by_route():
    binding = RouteBinding("rb1", "https://rs.example.com", {"route": "r1", "service_instance": "si1"})
    session = StubSession(routes=[Route("r1", "www")], route_bindings=[binding])
    objs = make_fetcher(session, Filter("routes", "serviceroutebindings")).get_objects()
    assert objs.route_bindings["r1"] is binding
    assert objs.service_route_bindings["rb1"] is binding


def test_task_states_and_event_window_are_passed():
    session = StubSession()
    fetcher = make_fetcher(session, Filter("tasks", "events"))
    fetcher.task_states = ("FAILED",)
    fetcher.get_objects()
    assert session.task_states == ("FAILED",)
    assert utcnow() - session.events_since >= timedelta(minutes=15)


def test_default_task_states_are_left_to_the_session():
    session = StubSession()
    make_fetcher(session, Filter("tasks")).get_objects()
    assert session.task_states is None
