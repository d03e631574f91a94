import csv
import json
import math
from typing import Any, Dict, List, Sequence

import pandas as pd

from api_csv_exporter.errors import ConversionError
from api_csv_exporter.small_utils import dig


def cell_text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float) and math.isfinite(v) and v.is_integer():
        return str(int(v))
    if isinstance(v, (str, int, float)):
        return str(v)
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False, separators=(",", ":"))
    raise TypeError(f"value of type {type(v).__name__} is not serializable")


def records_to_frame(
    records: Sequence[Any], column_spec: Dict[str, Any]
) -> pd.DataFrame:
    fields = [k["field"] for k in column_spec["keys"]]
    titles = [k["title"] for k in column_spec["keys"]]
    rows: List[List[str]] = []
    for i, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise TypeError(
                f"record {i} is {type(rec).__name__}, expected an object"
            )
        rows.append([cell_text(dig(rec, f)) for f in fields])
    return pd.DataFrame(rows, columns=titles, dtype=str)


def convert_records(
    records: Sequence[Any],
    column_spec: Dict[str, Any],
    prepend_header: bool,
) -> str:
    """Render one page of records as a delimited text block.

    Lines are joined by ``eol`` with no trailing terminator; callers that
    concatenate blocks add the separator themselves.
    """
    eol = column_spec["eol"]
    try:
        df = records_to_frame(records, column_spec)
        text = df.to_csv(
            index=False,
            header=prepend_header,
            sep=column_spec["delimiter"],
            quotechar=column_spec["wrap"],
            quoting=csv.QUOTE_ALL,
            doublequote=True,
            lineterminator=eol,
        )
    except (TypeError, ValueError) as e:
        raise ConversionError(
            f"could not convert {len(records)} records", e
        ) from e
    if eol and text.endswith(eol):
        text = text[: -len(eol)]
    return text
