# access_ledger/config/logging.py

import json
import logging
from datetime import datetime, timezone

from access_ledger.core.context import correlation_id_ctx, principal_id_ctx, tenant_id_ctx

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "correlation_id": correlation_id_ctx.get(),
            "tenant_id": tenant_id_ctx.get(),
            "principal_id": principal_id_ctx.get(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_record:
                log_record[key] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(log_level: str):
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if any(isinstance(h.formatter, JsonFormatter) for h in root_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
