from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Callable

LogFn = Callable[[str, str], None]


def log(level: str, event: str, **fields: object) -> None:
    payload = {
        "ts": utc_now_rfc3339(),
        "level": level,
        "event": event,
        **fields,
    }
    print(json.dumps(payload, separators=(",", ":"), default=str), file=sys.stderr, flush=True)


def stderr_sink(event: str, **context: object) -> LogFn:
    return lambda level, message: log(level, event, message=message, **context)


def utc_now_rfc3339() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
