from typing import Any, Dict, Tuple

import pandas as pd

from api_csv_exporter.columns import resolve_header_policy
from api_csv_exporter.config import prepare
from api_csv_exporter.conversion import convert_records
from api_csv_exporter.driver import RunResult, drain
from api_csv_exporter.fetcher import fetch_page
from api_csv_exporter.request_helpers import build_session, build_url
from api_csv_exporter.sinks import build_local_sink, build_s3_sink
from api_csv_exporter.small_utils import whitelist_request_opts

SINKS = {"local", "s3"}


class PagedExporter:
    """Thin orchestrator: config -> session -> drain(fetch, convert, sink)."""

    def __init__(self, config: Dict[str, Any], log):
        self.config = config
        self.log = log

    def _build_sink(self, ctx, sink_name, job_cfg, column_spec, started):
        out_cfg = job_cfg.get("output") or {}
        if sink_name == "local":
            return build_local_sink(
                ctx, out_cfg.get("local") or {}, column_spec["eol"]
            )
        return build_s3_sink(ctx, out_cfg.get("s3") or {}, started)

    def run(
        self, job_name: str, env_name: str, sink: str = "local"
    ) -> Tuple[RunResult, Dict[str, Any]]:
        started = pd.Timestamp.now(tz="UTC")
        sink_name = (sink or "local").lower()
        if sink_name not in SINKS:
            raise ValueError(f"Unsupported sink: {sink}")
        self.log.info(f"[run] start job={job_name} env={env_name} sink={sink_name}")

        env_cfg, job_cfg, req_opts, column_spec = prepare(
            self.config, job_name, env_name
        )
        safe_defaults = whitelist_request_opts(req_opts)
        source_url = build_url(env_cfg["base_url"], job_cfg.get("path", ""))
        page_size = job_cfg["page_size"]

        ctx: Dict[str, Any] = {
            "log": self.log,
            "job": job_name,
            "env": env_name,
            "source_url": source_url,
        }
        writer = self._build_sink(ctx, sink_name, job_cfg, column_spec, started)
        header_policy = resolve_header_policy(column_spec, sink_name)

        sess = build_session(safe_defaults)
        try:
            result = drain(
                ctx,
                fetch=lambda page: fetch_page(
                    ctx, sess, source_url, page, page_size, safe_defaults, job_cfg
                ),
                convert=lambda records, header: convert_records(
                    records, column_spec, header
                ),
                sink=writer,
                page_size=page_size,
                header_policy=header_policy,
                total_drift=job_cfg["total_drift"],
            )
        finally:
            sess.close()

        ended = pd.Timestamp.now(tz="UTC")
        state = result.state
        meta = {
            "job": job_name,
            "env": env_name,
            "sink": sink_name,
            "status": "ok" if result.is_ok() else "error",
            "pages": state.current_page if result.is_ok() else state.current_page - 1,
            "records": state.records_so_far,
            "total": state.total,
            "page_size": page_size,
            "header_policy": header_policy,
            "destination": writer.destination,
            "started_at": started.isoformat(),
            "ended_at": ended.isoformat(),
            "duration_s": float((ended - started).total_seconds()),
            "source_url": source_url,
        }
        if result.is_ok():
            self.log.info(
                f"[run] done job={job_name} env={env_name} pages={meta['pages']} "
                f"records={meta['records']} duration={meta['duration_s']:.3f}s "
                f"dest={meta['destination']}"
            )
        else:
            meta["error"] = result.detail
            meta["failed_page"] = state.current_page
            self.log.error(
                f"[run] failed job={job_name} env={env_name} page={state.current_page} "
                f"kind={result.kind}: {result.detail}"
            )
        return result, meta
