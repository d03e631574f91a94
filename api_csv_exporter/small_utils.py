from typing import Any, Dict, Optional

ALLOWED_REQUEST_KW = {
    "headers",
    "params",
    "timeout",
    "verify",
    "proxies",
    "allow_redirects",
}


def whitelist_request_opts(opts: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in (opts or {}).items() if k in ALLOWED_REQUEST_KW}


def dig(obj: Any, path: Optional[str]):
    """Follow a dotted path through nested dicts; None when any hop is missing."""
    if not path:
        return None
    cur = obj
    for key in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
        if cur is None:
            return None
    return cur
