# exporter_wrapper.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

from api_csv_exporter import PagedExporter
from api_csv_exporter.driver import RunResult
from utils.config_reader import ConfigReader

LOG = logging.getLogger("exporter_wrapper")

DEFAULT_CONFIG_PATH = "config/exporter.yml"


def load_config(yaml_path: str, log: logging.Logger = LOG) -> Dict[str, Any]:
    return ConfigReader(log, Path(yaml_path)).load_configurations().configs_data


def run_exporter(
    job: str,
    env_name: str,
    yaml_path: str = DEFAULT_CONFIG_PATH,
    sink: str = "local",
    log: logging.Logger = LOG,
) -> Tuple[RunResult, Dict[str, Any]]:
    """
    Execute one export run and return (result, metadata).

    Args:
        job:       Job key under 'exports' in the YAML (e.g. 'stores').
        env_name:  Environment key under 'envs' (e.g. 'prod').
        yaml_path: Path to the YAML config.
        sink:      'local' (one growing file) or 's3' (one object per page).
    """
    if not job:
        raise ValueError("Parameter 'job' is required.")
    if not env_name:
        raise ValueError("Parameter 'env_name' is required.")

    config = load_config(yaml_path, log)
    exporter = PagedExporter(config=config, log=log)
    result, meta = exporter.run(job_name=job, env_name=env_name, sink=sink)

    log.info("Exporter metadata: %s", json.dumps(meta))
    return result, meta
