from __future__ import annotations
import hmac

from flask import Flask, Response, current_app, request
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from .. import __version__
from ..config import WebConfig
from .ui import render_html


def _authorized(cfg: WebConfig) -> bool:
    auth = request.authorization
    if auth is None or auth.type != "basic":
        return False
    user_ok = hmac.compare_digest((auth.username or "").encode(), cfg.auth_username.encode())
    pass_ok = hmac.compare_digest((auth.password or "").encode(), cfg.auth_password.encode())
    return user_ok and pass_ok


def create_app(cfg: WebConfig, registry: CollectorRegistry) -> Flask:
    app = Flask(__name__)

    @app.get("/")
    def index():
        return Response(render_html(cfg.telemetry_path, __version__), mimetype="text/html")

    def metrics():
        if cfg.auth_enabled and not _authorized(cfg):
            current_app.logger.warning("rejected metrics request from %s", request.remote_addr)
            return Response("Unauthorized\n", status=401,
                            headers={"WWW-Authenticate": 'Basic realm="metrics"'},
                            mimetype="text/plain")
        return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)

    app.add_url_rule(cfg.telemetry_path, "metrics", metrics, methods=["GET"])
    return app
