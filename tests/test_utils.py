from datetime import datetime, timedelta, timezone

import pytest

from cf_exporter.errors import ConfigError
from cf_exporter.models import ActualLRP, Quota, relationships
from cf_exporter.utils.convert import bool_to_float, null_int_to_float, parse_time
from cf_exporter.utils.net import parse_listen_address


@pytest.mark.parametrize("addr, expected", [
    (":9193", ("0.0.0.0", 9193)),
    ("*:80", ("0.0.0.0", 80)),
    ("127.0.0.1:9193", ("127.0.0.1", 9193)),
    ("[::1]:9193", ("::1", 9193)),
])
def test_listen_address(addr, expected):
    assert parse_listen_address(addr) == expected


@pytest.mark.parametrize("addr", ["", "9193", "localhost", "host:http", ":0", ":70000"])
def test_invalid_listen_address(addr):
    with pytest.raises(ConfigError):
        parse_listen_address(addr)


def test_conversions():
    assert null_int_to_float(None) == -1.0
    assert null_int_to_float(0) == 0.0
    assert bool_to_float(True) == 1.0 and bool_to_float(None) == 0.0


def test_parse_time():
    assert parse_time("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parse_time("2024-01-02T05:04:05+02:00") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parse_time("") is None
    assert parse_time("2024-01-02T03:04:05").utcoffset() == timedelta(0)


def test_relationships_are_flattened():
    rel = relationships({"relationships": {
        "space": {"data": {"guid": "sp1"}},
        "current_droplet": {"data": None},
    }})
    assert rel == {"space": "sp1"}


def test_unlimited_quota_fields():
    q = Quota.from_json({
        "guid": "q1", "name": "default",
        "apps": {"total_memory_in_mb": 1024, "per_process_memory_in_mb": None},
        "services": {"paid_services_allowed": True},
    })
    assert q.total_memory_mb == 1024
    assert q.instance_memory_mb is None
    assert q.paid_services_allowed is True


def test_lrp_process_guid_strips_version_suffix():
    guid = "6a1e5a0b-3f2c-4e8d-9b7a-1c2d3e4f5a6b"
    lrp = ActualLRP.from_json({
        "actual_lrp_key": {"process_guid": f"{guid}-a7b1c2d3-0000-4000-8000-000000000001", "index": 3},
        "actual_lrp_instance_key": {"instance_guid": "i-1"},
        "state": "RUNNING",
    })
    assert lrp.app_process_guid == guid
    assert lrp.index == 3
    assert lrp.instance_guid == "i-1"
