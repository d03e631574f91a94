"""
Lambda entry point for the object-storage variant: every page becomes
``<bucket>/<run date>/<page>.csv``.

Environment:
    EXPORTER_CONFIG  YAML path inside the deployment package (default config/exporter.yml)
    EXPORTER_JOB     job key under 'exports' (default stores)
    EXPORTER_ENV     env key under 'envs' (default prod)
"""

import json
import os
from typing import Any, Dict

from logger.basic_logger import setup_logger
from utils.exporter_wrapper import DEFAULT_CONFIG_PATH, run_exporter


def _failure(detail: str) -> Dict[str, Any]:
    return {"statusCode": 400, "body": f"export failed: {detail}"}


def handler(event, context=None) -> Dict[str, Any]:
    # event is only a trigger; nothing in it is read
    log = setup_logger(os.getenv("LOG_LEVEL", "INFO"))
    try:
        result, meta = run_exporter(
            job=os.getenv("EXPORTER_JOB", "stores"),
            env_name=os.getenv("EXPORTER_ENV", "prod"),
            yaml_path=os.getenv("EXPORTER_CONFIG", DEFAULT_CONFIG_PATH),
            sink="s3",
            log=log,
        )
    except (KeyError, ValueError, RuntimeError) as e:
        log.error(f"[handler] export could not start: {e}")
        return _failure(str(e))

    if not result.is_ok():
        return _failure(result.detail)
    return {"statusCode": 200, "body": json.dumps(result.response, default=str)}
