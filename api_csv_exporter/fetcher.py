from typing import Any, Dict

import requests
from requests import Session

from api_csv_exporter.errors import FetchError
from api_csv_exporter.request_helpers import log_request
from api_csv_exporter.small_utils import dig, whitelist_request_opts


def page_request_opts(
    base_opts: Dict[str, Any],
    page: int,
    page_size: int,
    job_cfg: Dict[str, Any],
) -> Dict[str, Any]:
    safe = whitelist_request_opts(dict(base_opts))
    params = dict(safe.get("params") or {})
    params[job_cfg.get("limit_param", "limit")] = page_size
    params[job_cfg.get("page_param", "page")] = page
    safe["params"] = params
    return safe


def parse_page(data: Any, response_cfg: Dict[str, Any]) -> Dict[str, Any]:
    records_path = response_cfg.get("records_path", "results")
    total_path = response_cfg.get("total_path", "page_meta.total")

    records = dig(data, records_path)
    if records is None:
        raise ValueError(f"response has no record list at '{records_path}'")
    if not isinstance(records, list):
        raise ValueError(
            f"expected a list at '{records_path}', got {type(records).__name__}"
        )

    total = dig(data, total_path)
    if total is None or isinstance(total, bool):
        raise ValueError(f"response has no total count at '{total_path}'")
    total = int(total)
    if total < 0:
        raise ValueError(f"negative total count {total}")
    return {"records": records, "total": total}


def fetch_page(
    ctx: Dict[str, Any],
    sess: Session,
    url: str,
    page: int,
    page_size: int,
    base_opts: Dict[str, Any],
    job_cfg: Dict[str, Any],
) -> Dict[str, Any]:
    """GET one page and return {"records": [...], "total": int}."""
    safe = page_request_opts(base_opts, page, page_size, job_cfg)
    log_request(ctx, url, safe, prefix=f"[fetch page={page}] ")
    try:
        resp = sess.get(url, **safe)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise FetchError(f"GET {url} page={page} failed", e) from e

    try:
        return parse_page(data, job_cfg.get("response") or {})
    except (TypeError, ValueError) as e:
        raise FetchError(f"GET {url} page={page} returned a malformed body", e) from e
