"""
Root logging setup for the API process.

Modules log through `logging.getLogger(__name__)` with `event key=value`
messages; this only decides where and how the records are rendered.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from . import settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(*, level: str | None = None, json_logs: bool | None = None) -> None:
    level_name = level or settings.env_str("LOG_LEVEL", "INFO")
    use_json = settings.env_bool("LOG_JSON", False) if json_logs is None else json_logs

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.strip().upper(), logging.INFO))

    # Reconfiguring (tests, reload) must not stack handlers.
    root.handlers[:] = []

    handler = logging.StreamHandler()
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)
