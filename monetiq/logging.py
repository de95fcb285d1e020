from __future__ import annotations

import logging
import os

from pythonjsonlogger import jsonlogger

from monetiq.config import settings


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines tagged with the service name and, when present, job/variant ids."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", settings.SERVICE_NAME)
        for key in ("job_id", "variant_id", "worker_id"):
            value = getattr(record, key, None)
            if value is not None:
                log_record[key] = str(value)


def configure_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ServiceJsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)

    for noisy, env in (
        ("httpx", "HTTPX_LOG_LEVEL"),
        ("botocore", "BOTOCORE_LOG_LEVEL"),
        ("azure", "AZURE_LOG_LEVEL"),
        ("uvicorn.access", "UVICORN_ACCESS_LOG_LEVEL"),
    ):
        logging.getLogger(noisy).setLevel(os.getenv(env, "WARNING"))
