from __future__ import annotations
import logging, sys
from datetime import datetime, timezone

import orjson

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}
STREAMS = {"stdout": sys.stdout, "stderr": sys.stderr}
TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class JSONLFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode()


def configure_logging(level: str = "error", stream: str = "stdout", json: bool = False) -> None:
    lvl = LEVELS.get((level or "").lower())
    handler = logging.StreamHandler(STREAMS.get(stream, sys.stdout))
    handler.setFormatter(JSONLFormatter() if json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    if lvl is None:
        root.setLevel(logging.WARNING)
        logging.getLogger(__name__).warning("invalid log level '%s', using 'error'", level)
        lvl = logging.ERROR
    root.setLevel(lvl)

    # werkzeug prints one line per scrape at info
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

