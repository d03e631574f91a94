"""
Pagination driver: fetch page N, convert it, hand it to the sink, then decide
whether page N+1 is needed.

The run ends once ``page_size * page >= total``, where ``total`` is the count
reported by the first page. Any ExportError ends the run immediately; the
failed page is never written and no later page is fetched.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from api_csv_exporter.columns import wants_header
from api_csv_exporter.errors import ExportError, FetchError
from api_csv_exporter.request_helpers import log_exception


@dataclass
class RunState:
    current_page: int = 1
    records_so_far: int = 0
    total: Optional[int] = None

    def is_last_page(self, page_size: int) -> bool:
        return self.total is not None and page_size * self.current_page >= self.total


@dataclass(frozen=True)
class RunOk:
    response: Any
    state: RunState

    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class RunErr:
    kind: str
    detail: str
    error: ExportError
    state: RunState

    def is_ok(self) -> bool:
        return False


RunResult = Union[RunOk, RunErr]


def _check_total(
    ctx: Dict[str, Any], state: RunState, reported: int, total_drift: str
) -> None:
    if state.total is None:
        state.total = reported
        ctx["log"].info(f"[drain] Total number of records {reported}")
        return
    if reported == state.total:
        return
    msg = (
        f"total changed from {state.total} to {reported} "
        f"on page {state.current_page}"
    )
    if total_drift == "abort":
        raise FetchError(msg)
    ctx["log"].warning(f"[drain] {msg}; keeping {state.total}")


def drain(
    ctx: Dict[str, Any],
    fetch: Callable[[int], Dict[str, Any]],
    convert: Callable[[List[Any], bool], str],
    sink,
    page_size: int,
    header_policy: str = "first_page",
    total_drift: str = "ignore",
) -> RunResult:
    log = ctx["log"]
    state = RunState()
    last_response = None

    while True:
        page = state.current_page
        try:
            result = fetch(page)
            _check_total(ctx, state, result["total"], total_drift)
            records = result["records"]
            block = convert(records, wants_header(header_policy, page))
            last_response = sink.append(block, page)
        except ExportError as e:
            log_exception(
                ctx, ctx.get("source_url", ""), e, prefix=f"[{e.kind} page={page}] "
            )
            return RunErr(kind=e.kind, detail=str(e), error=e, state=state)

        state.records_so_far += len(records)
        log.info(
            f"[drain] page={page} records={len(records)} "
            f"so_far={state.records_so_far} total={state.total}"
        )
        if state.is_last_page(page_size):
            log.info(f"[drain] Complete after {page} page(s)")
            return RunOk(response=last_response, state=state)
        state.current_page += 1
