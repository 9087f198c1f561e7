from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional


def bool_to_float(v: Optional[bool]) -> float:
    return 1.0 if v else 0.0


def null_int_to_float(v: Optional[int]) -> float:
    # unset quota fields mean "unlimited"
    return -1.0 if v is None else float(v)


def parse_time(v: Optional[str]) -> Optional[datetime]:
    if not v:
        return None
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    ts = datetime.fromisoformat(v)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
