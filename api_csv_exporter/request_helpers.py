import traceback
from typing import Any, Dict, Optional
from urllib.parse import urljoin

from requests import Session

_SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "api-key",
    "proxy-authorization",
}
_SENSITIVE_PARAMS = {
    "access_token",
    "token",
    "apikey",
    "api_key",
    "authorization",
    "signature",
    "client_id",
    "client_secret",
    "secret",
    "password",
    "key",
}


def build_url(base_url: str, path: str) -> str:
    return urljoin(base_url.rstrip("/") + "/", (path or "").lstrip("/"))


def build_session(defaults: Optional[Dict[str, Any]] = None) -> Session:
    s = Session()
    if defaults:
        apply_session_defaults(s, defaults)
    return s


def apply_session_defaults(sess: Session, opts: Dict[str, Any]) -> None:
    if opts.get("headers"):
        sess.headers.update(opts["headers"])
    if opts.get("proxies"):
        sess.proxies.update(opts["proxies"])
    if "verify" in opts:
        sess.verify = opts["verify"]


def log_request(
    ctx: Dict[str, Any], url: str, opts: Dict[str, Any], prefix: str = ""
):
    log = ctx["log"]
    safe_headers = dict(opts.get("headers") or {})
    for k in list(safe_headers):
        if k.lower() in _SENSITIVE_HEADERS:
            safe_headers[k] = "***REDACTED***"
    safe_params = dict(opts.get("params") or {})
    for k in list(safe_params):
        if k.lower() in _SENSITIVE_PARAMS:
            safe_params[k] = "***REDACTED***"
    log.info(f"{prefix}GET {url} params={safe_params} headers={safe_headers}")


def log_exception(
    ctx: Dict[str, Any], url: str, e: Exception, prefix: str = ""
):
    ctx["log"].error(
        f"{prefix}Error exporting data from {url}: {e}\nStack Trace: {traceback.format_exc()}"
    )
