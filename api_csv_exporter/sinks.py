import os
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from api_csv_exporter.errors import StorageError


class LocalFileSink:
    """Appends every page to one growing file.

    Blocks are separated by ``eol``; a fresh run truncates the file first so
    the header written with page 1 is the only one in it.
    """

    def __init__(self, path, eol: str = "\r\n", truncate: bool = True, log=None):
        self.path = Path(path)
        self.eol = eol
        self.truncate = truncate
        self.log = log
        self._opened = False
        self._has_content = False

    def _open_run(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.truncate:
            with open(self.path, "w", encoding="utf-8", newline=""):
                pass
            self._has_content = False
        else:
            self._has_content = (
                self.path.exists() and os.path.getsize(self.path) > 0
            )
        self._opened = True

    def append(self, block: str, page: int) -> Dict[str, Any]:
        try:
            if not self._opened:
                self._open_run()
            if not block:
                return {"path": str(self.path), "page": page, "bytes": 0}
            text = (self.eol + block) if self._has_content else block
            with open(self.path, "a", encoding="utf-8", newline="") as fh:
                fh.write(text)
        except OSError as e:
            raise StorageError(f"append to {self.path} failed", e) from e

        self._has_content = True
        n = len(text.encode("utf-8"))
        if self.log is not None:
            self.log.info(f"[output] Appended page {page} ({n} bytes) to {self.path}")
        return {"path": str(self.path), "page": page, "bytes": n}

    @property
    def destination(self) -> str:
        return str(self.path)


class S3Sink:
    """Writes each page as its own object: ``<prefix>/<page>.<extension>``."""

    def __init__(
        self,
        client,
        bucket: str,
        prefix: str = "",
        extension: str = "csv",
        extra_args: Optional[Dict[str, Any]] = None,
        log=None,
    ):
        self.client = client
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self.extension = extension
        self.extra_args = dict(extra_args or {})
        self.log = log

    def key_for(self, page: int) -> str:
        filename = f"{page}.{self.extension}" if self.extension else str(page)
        return "/".join([p for p in [self.prefix, filename] if p])

    def append(self, block: str, page: int) -> Dict[str, Any]:
        key = self.key_for(page)
        body = (block or "").encode("utf-8")
        try:
            resp = self.client.put_object(
                Bucket=self.bucket, Key=key, Body=body, **self.extra_args
            )
        except Exception as e:
            raise StorageError(
                f"put_object s3://{self.bucket}/{key} failed", e
            ) from e

        if self.log is not None:
            self.log.info(
                f"[output] Wrote page {page} ({len(body)} bytes) to s3://{self.bucket}/{key}"
            )
        return resp

    @property
    def destination(self) -> str:
        return f"s3://{self.bucket}/{self.prefix}" if self.prefix else f"s3://{self.bucket}"


def build_local_sink(
    ctx: Dict[str, Any], local_cfg: Dict[str, Any], eol: str
) -> LocalFileSink:
    path = (local_cfg.get("path") or "").strip()
    if not path:
        raise ValueError("output.local.path is required.")
    return LocalFileSink(
        path,
        eol=eol,
        truncate=bool(local_cfg.get("truncate", True)),
        log=ctx["log"],
    )


def build_s3_sink(
    ctx: Dict[str, Any], s3_cfg: Dict[str, Any], started: pd.Timestamp
) -> S3Sink:
    try:
        import boto3
    except Exception as e:
        raise RuntimeError("boto3 is required for S3 output.") from e

    bucket = (s3_cfg.get("bucket") or "").strip()
    if not bucket:
        raise ValueError("output.s3.bucket is required.")
    if "${" in bucket:
        raise ValueError(f"output.s3.bucket has an unresolved placeholder: {bucket}")

    now = started.to_pydatetime()
    context_vars = {
        "job": ctx.get("job", ""),
        "env": ctx.get("env", ""),
        "started": now,
        "today": now,
    }
    prefix = (s3_cfg.get("prefix") or "{started:%Y-%m-%d}").format(**context_vars)

    region_name = s3_cfg.get("region_name")
    endpoint_url = s3_cfg.get("endpoint_url")
    session = (
        boto3.session.Session(region_name=region_name)
        if region_name
        else boto3.session.Session()
    )
    client = session.client("s3", endpoint_url=endpoint_url)

    extra_args = {"ContentType": "text/csv"}
    if s3_cfg.get("acl"):
        extra_args["ACL"] = s3_cfg["acl"]
    if s3_cfg.get("sse"):
        extra_args["ServerSideEncryption"] = s3_cfg["sse"]
    if s3_cfg.get("sse_kms_key_id"):
        extra_args["SSEKMSKeyId"] = s3_cfg["sse_kms_key_id"]

    return S3Sink(
        client,
        bucket,
        prefix=prefix,
        extension=s3_cfg.get("extension", "csv"),
        extra_args=extra_args,
        log=ctx["log"],
    )
