from __future__ import annotations
import argparse, os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import orjson
import yaml

from .errors import ConfigError
from .utils.net import parse_listen_address
from .utils.path import existing_file, to_abs_path

ENV_PREFIX = "CF_EXPORTER_"
TASK_STATES = ("PENDING", "RUNNING", "CANCELING", "SUCCEEDED", "FAILED")
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CFConfig:
    api_url: str
    username: str = ""
    password: str = ""
    client_id: str = ""
    client_secret: str = ""
    deployment_name: str = ""
    skip_ssl_verify: bool = False


@dataclass(frozen=True)
class BBSConfig:
    api_url: str = ""
    timeout: int = 10
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    skip_ssl_verify: bool = False


@dataclass(frozen=True)
class WebConfig:
    listen_address: str = ":9193"
    telemetry_path: str = "/metrics"
    auth_username: str = ""
    auth_password: str = ""
    tls_cert_file: str = ""
    tls_key_file: str = ""

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_username and self.auth_password)

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_cert_file and self.tls_key_file)


@dataclass(frozen=True)
class MetricsConfig:
    namespace: str = "cf"
    environment: str = ""


@dataclass(frozen=True)
class LogConfig:
    level: str = "error"
    stream: str = "stdout"
    json: bool = False


@dataclass(frozen=True)
class Config:
    cf: CFConfig
    bbs: BBSConfig = field(default_factory=BBSConfig)
    web: WebConfig = field(default_factory=WebConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
    collectors: Tuple[str, ...] = ()
    task_states: Tuple[str, ...] = ()
    workers: int = 10


# (flag, env suffix or None, default, type, help)
FLAGS = [
    ("cf.api_url", "CF_API_URL", None, str, "Cloud Foundry API URL"),
    ("cf.username", "CF_USERNAME", "", str, "Cloud Foundry username (password grant)"),
    ("cf.password", "CF_PASSWORD", "", str, "Cloud Foundry password"),
    ("cf.client-id", "CF_CLIENT_ID", "", str, "Cloud Foundry client id (client credentials grant)"),
    ("cf.client-secret", "CF_CLIENT_SECRET", "", str, "Cloud Foundry client secret"),
    ("cf.deployment-name", "CF_DEPLOYMENT_NAME", None, str, "Cloud Foundry deployment name, value of the 'deployment' label"),
    ("bbs.api_url", "BBS_API_URL", "", str, "BBS API URL, enables live instance counts"),
    ("bbs.timeout", "BBS_TIMEOUT", 10, int, "BBS API timeout in seconds"),
    ("bbs.ca_file", "BBS_CA_FILE", "", str, "BBS CA certificate file"),
    ("bbs.cert_file", "BBS_CERT_FILE", "", str, "BBS client certificate file"),
    ("bbs.key_file", "BBS_KEY_FILE", "", str, "BBS client key file"),
    ("bbs.skip_ssl_verify", "BBS_SKIP_SSL_VERIFY", False, bool, "Disable BBS TLS verification"),
    ("filter.collectors", "FILTER_COLLECTORS", "", str, "Comma separated collectors to enable"),
    ("filter.task-states", "FILTER_TASK_STATES", "", str, "Comma separated task states to fetch"),
    ("metrics.namespace", "METRICS_NAMESPACE", "cf", str, "Metrics namespace"),
    ("metrics.environment", "METRICS_ENVIRONMENT", None, str, "Value of the 'environment' label"),
    ("skip-ssl-verify", "SKIP_SSL_VERIFY", False, bool, "Disable Cloud Foundry API TLS verification"),
    ("web.listen-address", "WEB_LISTEN_ADDRESS", ":9193", str, "Address to listen on"),
    ("web.telemetry-path", "WEB_TELEMETRY_PATH", "/metrics", str, "Path under which to expose metrics"),
    ("web.auth.username", "WEB_AUTH_USERNAME", "", str, "Basic auth username for the metrics path"),
    ("web.auth.password", "WEB_AUTH_PASSWORD", "", str, "Basic auth password for the metrics path"),
    ("web.tls.cert_file", "WEB_TLS_CERTFILE", "", str, "TLS certificate file"),
    ("web.tls.key_file", "WEB_TLS_KEYFILE", "", str, "TLS private key file"),
    ("collector.workers", None, 10, int, "Number of concurrent fetch workers"),
    ("log.level", None, "error", str, "One of debug, info, warn, error, fatal"),
    ("log.stream", None, "stdout", str, "One of stdout, stderr"),
    ("log.json", None, False, bool, "Log in JSON lines format"),
]


def dest(flag: str) -> str:
    return flag.replace(".", "_").replace("-", "_")


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="cf_exporter", description="Prometheus exporter for Cloud Foundry")
    ap.add_argument("--config-file", type=str, default=os.environ.get(ENV_PREFIX + "CONFIG_FILE"),
                    help="YAML or JSON file with defaults, keys like cf_api_url")
    for flag, env, default, kind, desc in FLAGS:
        env_help = f" [${ENV_PREFIX}{env}]" if env else ""
        if kind is bool:
            ap.add_argument(f"--{flag}", dest=dest(flag), action=argparse.BooleanOptionalAction,
                            default=None, help=desc + env_help)
        else:
            ap.add_argument(f"--{flag}", dest=dest(flag), type=kind, default=None,
                            help=f"{desc} (default: {default!r}){env_help}")
    return ap.parse_args(argv)


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    p = to_abs_path(path)
    if p is None:
        return {}
    if not p.exists():
        raise ConfigError(f"config file '{path}' not found")
    try:
        text = p.read_text(encoding="utf-8")
        data = yaml.safe_load(text) if p.suffix.lower() in (".yaml", ".yml") else orjson.loads(text)
    except (yaml.YAMLError, orjson.JSONDecodeError) as err:
        raise ConfigError(f"config file '{path}' is not valid: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file '{path}' must contain a mapping")
    return {dest(str(k)): v for k, v in data.items()}


def _coerce(flag: str, value: Any, kind: type) -> Any:
    if kind is bool:
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in TRUE_VALUES:
            return True
        if s in FALSE_VALUES:
            return False
        raise ConfigError(f"--{flag}: '{value}' is not a boolean")
    if kind is int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"--{flag}: '{value}' is not an integer") from None
    if isinstance(value, (list, tuple)):
        return ",".join(str(x) for x in value)
    return "" if value is None else str(value)


def resolve(args: argparse.Namespace, environ: Mapping[str, str], file_values: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge flag > env > config file > default for every known flag."""
    out: Dict[str, Any] = {}
    for flag, env, default, kind, _ in FLAGS:
        key = dest(flag)
        value = getattr(args, key, None)
        if value is None and env and (ENV_PREFIX + env) in environ:
            value = environ[ENV_PREFIX + env]
        if value is None and key in file_values:
            value = file_values[key]
        out[key] = default if value is None else _coerce(flag, value, kind)
    return out


def split_csv(value: str) -> Tuple[str, ...]:
    return tuple(v.strip() for v in (value or "").split(",") if v.strip())


def init_cfg_from_args(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> Config:
    environ = os.environ if environ is None else environ
    v = resolve(args, environ, load_config_file(getattr(args, "config_file", None)))

    for key, flag in (("cf_api_url", "cf.api_url"), ("cf_deployment_name", "cf.deployment-name"),
                      ("metrics_environment", "metrics.environment")):
        if not v[key]:
            raise ConfigError(f"required flag --{flag} not provided")
    has_user = bool(v["cf_username"] and v["cf_password"])
    has_client = bool(v["cf_client_id"] and v["cf_client_secret"])
    if not (has_user or has_client):
        raise ConfigError("either --cf.username and --cf.password or --cf.client-id and "
                          "--cf.client-secret must be provided")

    task_states = tuple(s.upper() for s in split_csv(v["filter_task_states"]))
    for s in task_states:
        if s not in TASK_STATES:
            raise ConfigError(f"task state '{s}' is not one of {', '.join(TASK_STATES)}")

    parse_listen_address(v["web_listen_address"])
    if not str(v["web_telemetry_path"]).startswith("/"):
        raise ConfigError(f"telemetry path '{v['web_telemetry_path']}' must start with '/'")
    if v["collector_workers"] < 1:
        raise ConfigError("--collector.workers must be at least 1")
    if v["log_stream"] not in ("stdout", "stderr"):
        raise ConfigError(f"invalid log stream '{v['log_stream']}'")

    return Config(
        cf=CFConfig(
            api_url=v["cf_api_url"],
            username=v["cf_username"],
            password=v["cf_password"],
            client_id=v["cf_client_id"],
            client_secret=v["cf_client_secret"],
            deployment_name=v["cf_deployment_name"],
            skip_ssl_verify=v["skip_ssl_verify"],
        ),
        bbs=BBSConfig(
            api_url=v["bbs_api_url"],
            timeout=v["bbs_timeout"],
            ca_file=existing_file(v["bbs_ca_file"], "BBS CA file"),
            cert_file=existing_file(v["bbs_cert_file"], "BBS certificate file"),
            key_file=existing_file(v["bbs_key_file"], "BBS key file"),
            skip_ssl_verify=v["bbs_skip_ssl_verify"],
        ),
        web=WebConfig(
            listen_address=v["web_listen_address"],
            telemetry_path=v["web_telemetry_path"],
            auth_username=v["web_auth_username"],
            auth_password=v["web_auth_password"],
            tls_cert_file=existing_file(v["web_tls_cert_file"], "TLS certificate file"),
            tls_key_file=existing_file(v["web_tls_key_file"], "TLS key file"),
        ),
        metrics=MetricsConfig(namespace=v["metrics_namespace"], environment=v["metrics_environment"]),
        log=LogConfig(level=v["log_level"], stream=v["log_stream"], json=v["log_json"]),
        collectors=split_csv(v["filter_collectors"]),
        task_states=task_states,
        workers=v["collector_workers"],
    )
