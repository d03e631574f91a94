import os
import re
from typing import Any, Dict

from api_csv_exporter.columns import build_column_spec

_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

DEFAULT_RESPONSE = {"records_path": "results", "total_path": "page_meta.total"}
DEFAULT_PARAMS = {"fields": "all"}


def expand_env_value(v: Any) -> Any:
    if isinstance(v, str):
        return _ENV_RE.sub(lambda m: os.getenv(m.group(1), m.group(0)), v)
    if isinstance(v, dict):
        return {k: expand_env_value(vv) for k, vv in v.items()}
    if isinstance(v, list):
        return [expand_env_value(x) for x in v]
    return v


def prepare(config: Dict[str, Any], job_name: str, env_name: str):
    """Return (env_cfg, job_cfg, req_opts, column_spec)."""
    env_cfg = (config.get("envs") or {}).get(env_name) or {}
    if not env_cfg.get("base_url"):
        raise ValueError(f"env '{env_name}' must define a non-empty base_url")

    exports_root = config.get("exports") or {}
    table_cfg = exports_root.get(job_name) or {}
    if not table_cfg:
        raise KeyError(f"Export config '{job_name}' not found under 'exports'.")

    # request defaults
    global_opts = exports_root.get("request_defaults", {}) or {}
    req_opts = dict(global_opts)
    req_opts["params"] = {
        **DEFAULT_PARAMS,
        **(req_opts.get("params") or {}),
    }
    for k in ("headers", "params"):
        tv = table_cfg.get(k)
        if isinstance(tv, dict):
            req_opts[k] = {**(req_opts.get(k) or {}), **tv}
    for k in ("timeout", "verify", "proxies"):
        if k in table_cfg:
            req_opts[k] = table_cfg[k]

    page_size = int(table_cfg.get("page_size", exports_root.get("page_size", 50)))
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    total_drift = str(table_cfg.get("total_drift", "ignore")).lower()
    if total_drift not in {"ignore", "abort"}:
        raise ValueError(f"Unsupported total_drift: {total_drift}")

    job_eff = {
        "path": table_cfg.get("path", exports_root.get("path", "")),
        "page_size": page_size,
        "page_param": table_cfg.get("page_param", "page"),
        "limit_param": table_cfg.get("limit_param", "limit"),
        "total_drift": total_drift,
        "response": {
            **DEFAULT_RESPONSE,
            **(exports_root.get("response", {}) or {}),
            **(table_cfg.get("response", {}) or {}),
        },
        "output": {
            **(exports_root.get("output", {}) or {}),
            **(table_cfg.get("output", {}) or {}),
        },
    }

    env_cfg = expand_env_value(env_cfg)
    req_opts = expand_env_value(req_opts)
    job_eff = expand_env_value(job_eff)

    column_spec = build_column_spec(
        {
            **(exports_root.get("columns", {}) or {}),
            **(table_cfg.get("columns", {}) or {}),
        }
    )
    return env_cfg, job_eff, req_opts, column_spec
