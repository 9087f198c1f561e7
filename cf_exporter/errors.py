from __future__ import annotations
from typing import Optional


class ExporterError(Exception):
    pass


class ConfigError(ExporterError):
    """Invalid or missing startup configuration."""


class ConnectError(ExporterError):
    """A CF, UAA or BBS client could not be constructed."""


class FetchError(ExporterError):
    def __init__(self, endpoint: str, reason: str = "", status: Optional[int] = None):
        self.endpoint = endpoint
        self.status = status
        msg = f"unable to fetch '{endpoint}'"
        if status is not None:
            msg += f" (status {status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StaleResource(ExporterError):
    """The resource disappeared between listing and detail lookup."""

    def __init__(self, kind: str, guid: str):
        self.kind = kind
        self.guid = guid
        super().__init__(f"{kind} '{guid}' no longer exists")


class EmitterError(ExporterError):
    pass
