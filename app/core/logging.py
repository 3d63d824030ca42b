import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

# Correlation id of the request being served, bound by CorrelationIdMiddleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

SERVICE_NAME = "edu-admin-backend"

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["level"] = (log_record.get("level") or record.levelname).upper()
        log_record["service"] = SERVICE_NAME
        log_record["env"] = os.getenv("APP_ENV", "development")

def setup_logging(level: int = logging.INFO):
    root = logging.getLogger()
    # The app module may be imported more than once (tests, reloaders)
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    root.addHandler(handler)
    root.setLevel(level)

    for noisy, noisy_level in (("uvicorn.access", logging.WARNING),
                               ("sqlalchemy.engine", logging.WARNING),
                               ("passlib", logging.ERROR)):
        logging.getLogger(noisy).setLevel(noisy_level)
