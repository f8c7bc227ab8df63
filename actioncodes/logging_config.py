import json, logging, sys
from datetime import datetime, timezone
from typing import List, Optional

from actioncodes.core.config import LOG_FILE, LOG_LEVEL

# Context attached via log(..., extra={...}) and copied into each JSON line
EXTRA_FIELDS = ("request_id", "action_code", "mode", "error_code")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, plus known extras."""

    def format(self, record):
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Install JSON handlers on the root logger.

    level and log_file default to ACTIONCODES_LOG_LEVEL / ACTIONCODES_LOG_FILE;
    an empty log_file means console only.
    """
    formatter = JsonFormatter()
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    log_file = LOG_FILE if log_file is None else log_file
    if log_file:
        # Debug file, always appended
        handlers.append(logging.FileHandler(log_file, mode="a"))

    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    root.handlers = handlers
