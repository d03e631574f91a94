"""
Column mapping: which record fields become CSV columns, and how the
delimited text is laid out.

Config shape (under ``exports.columns`` or ``exports.<job>.columns``)::

    columns:
      wrap: '"'
      delimiter: ","
      eol: "\\r\\n"
      header: first_page      # first_page | every_page | never
      keys:
        - {field: contact.city, title: City}
        - store_type          # bare string -> title == field
"""

from typing import Any, Dict, List, Optional

HEADER_POLICIES = {"first_page", "every_page", "never"}

# per-sink default when columns.header is unset
DEFAULT_HEADER_POLICY = {"local": "first_page", "s3": "every_page"}


def _normalize_keys(keys: Any) -> List[Dict[str, str]]:
    if not keys:
        raise ValueError("columns.keys must list at least one field.")
    out = []
    for k in keys:
        if isinstance(k, str):
            out.append({"field": k, "title": k})
        elif isinstance(k, dict) and k.get("field"):
            out.append(
                {"field": str(k["field"]), "title": str(k.get("title") or k["field"])}
            )
        else:
            raise ValueError(f"Invalid column key: {k!r}")
    return out


def build_column_spec(cfg: Dict[str, Any]) -> Dict[str, Any]:
    cfg = cfg or {}
    wrap = cfg.get("wrap", '"')
    delimiter = cfg.get("delimiter", ",")
    if not isinstance(wrap, str) or len(wrap) != 1:
        raise ValueError(f"columns.wrap must be a single character, got {wrap!r}")
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise ValueError(
            f"columns.delimiter must be a single character, got {delimiter!r}"
        )

    header = cfg.get("header")
    if header is not None:
        header = str(header).lower()
        if header not in HEADER_POLICIES:
            raise ValueError(f"Unsupported columns.header: {header}")

    return {
        "keys": _normalize_keys(cfg.get("keys")),
        "wrap": wrap,
        "delimiter": delimiter,
        "eol": cfg.get("eol", "\r\n"),
        "header": header,
        "prepend_header": bool(cfg.get("prepend_header", True)),
    }


def resolve_header_policy(column_spec: Dict[str, Any], sink: str) -> str:
    if column_spec.get("header"):
        return column_spec["header"]
    if not column_spec.get("prepend_header", True):
        return "never"
    return DEFAULT_HEADER_POLICY.get(sink, "first_page")


def wants_header(policy: Optional[str], page: int) -> bool:
    if policy == "every_page":
        return True
    if policy == "never":
        return False
    return page == 1
