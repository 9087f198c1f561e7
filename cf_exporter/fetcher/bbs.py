from __future__ import annotations
import logging
from typing import List

import orjson
import requests
import urllib3

from ..config import BBSConfig
from ..errors import ConnectError, FetchError
from ..models import ActualLRP
from .session import decode, requests_session

log = logging.getLogger(__name__)

ACTUAL_LRPS_PATH = "/v1/actual_lrps/list"


class BBSClient:
    """Diego BBS client; only ActualLRP listing is needed."""

    def __init__(self, config: BBSConfig):
        self.config = config
        self.url = config.api_url.rstrip("/")
        self.timeout = config.timeout
        self.http = requests_session(retries=1)
        if config.cert_file and config.key_file:
            self.http.cert = (config.cert_file, config.key_file)
        if config.skip_ssl_verify:
            self.http.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        elif config.ca_file:
            self.http.verify = config.ca_file
        try:
            self.list_actual_lrps()
        except FetchError as err:
            self.http.close()
            raise ConnectError(f"unable to reach bbs '{self.url}': {err}") from err

    def list_actual_lrps(self) -> List[ActualLRP]:
        try:
            resp = self.http.post(self.url + ACTUAL_LRPS_PATH, data=b"{}", timeout=self.timeout,
                                  headers={"Content-Type": "application/json"})
        except requests.RequestException as err:
            raise FetchError(ACTUAL_LRPS_PATH, str(err)) from err
        if resp.status_code != 200:
            raise FetchError(ACTUAL_LRPS_PATH, resp.reason or "", resp.status_code)
        try:
            payload = decode(resp)
        except orjson.JSONDecodeError as err:
            raise FetchError(ACTUAL_LRPS_PATH, f"invalid json: {err}") from err
        failure = payload.get("error")
        if failure:
            if isinstance(failure, dict):
                failure = f"{failure.get('type', '')}: {failure.get('message', '')}"
            raise FetchError(ACTUAL_LRPS_PATH, str(failure))
        return [ActualLRP.from_json(lrp) for lrp in payload.get("actual_lrps") or []]

    def close(self) -> None:
        self.http.close()
