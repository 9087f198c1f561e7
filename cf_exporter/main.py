from __future__ import annotations
import logging, sys

from prometheus_client import CollectorRegistry, PlatformCollector, ProcessCollector

from . import __version__
from .collectors import Collector
from .config import Config, init_cfg_from_args, parse_args
from .errors import ConfigError, ConnectError
from .fetcher import Fetcher
from .filters import Filter
from .utils.logs import configure_logging
from .utils.net import parse_listen_address
from .web import create_app

log = logging.getLogger(__name__)


def build_registry(cfg: Config) -> CollectorRegistry:
    flt = Filter(*cfg.collectors)
    fetcher = Fetcher(cfg.workers, cfg.cf, cfg.bbs, flt, task_states=cfg.task_states)
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    registry.register(Collector(cfg.metrics.namespace, cfg.metrics.environment,
                                cfg.cf.deployment_name, fetcher, flt))
    return registry


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        cfg = init_cfg_from_args(args)
    except ConfigError as err:
        configure_logging()
        log.critical("invalid configuration: %s", err)
        return 1
    configure_logging(cfg.log.level, cfg.log.stream, cfg.log.json)

    try:
        registry = build_registry(cfg)
    except (ConfigError, ConnectError) as err:
        log.critical("unable to start: %s", err)
        return 1

    app = create_app(cfg.web, registry)
    host, port = parse_listen_address(cfg.web.listen_address)
    ssl_context = (cfg.web.tls_cert_file, cfg.web.tls_key_file) if cfg.web.tls_enabled else None
    scheme = "https" if ssl_context else "http"
    log.info("starting cf_exporter %s, serving %s://%s:%d%s", __version__, scheme, host, port,
             cfg.web.telemetry_path)
    try:
        app.run(host=host, port=port, ssl_context=ssl_context, threaded=True, debug=False, use_reloader=False)
    except OSError as err:
        log.critical("unable to listen on %s: %s", cfg.web.listen_address, err)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
