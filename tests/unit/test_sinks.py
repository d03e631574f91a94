import pandas as pd
import pytest

from api_csv_exporter import sinks
from api_csv_exporter.errors import StorageError


@pytest.fixture
def ctx(capture_log):
    return {"log": capture_log, "job": "stores", "env": "prod"}


def _read(path):
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


# ---------- LocalFileSink ----------


def test_local_sink_appends_pages_with_eol_between(tmp_path, capture_log):
    path = tmp_path / "out.csv"
    sink = sinks.LocalFileSink(path, eol="\r\n", log=capture_log)
    r1 = sink.append('"H"\r\n"a"', 1)
    r2 = sink.append('"b"', 2)
    assert _read(path) == '"H"\r\n"a"\r\n"b"'
    assert r1 == {"path": str(path), "page": 1, "bytes": 8}
    assert r2["bytes"] == 5
    assert len(capture_log.lines("info")) == 2


def test_local_sink_truncates_existing_file_on_first_append(tmp_path):
    path = tmp_path / "out.csv"
    path.write_text("stale")
    sink = sinks.LocalFileSink(path)
    sink.append('"x"', 1)
    assert _read(path) == '"x"'


def test_local_sink_without_truncate_continues_existing_file(tmp_path):
    path = tmp_path / "out.csv"
    path.write_bytes(b'"old"')
    sink = sinks.LocalFileSink(path, truncate=False)
    sink.append('"new"', 1)
    assert _read(path) == '"old"\r\n"new"'


def test_local_sink_skips_empty_blocks(tmp_path):
    path = tmp_path / "out.csv"
    sink = sinks.LocalFileSink(path)
    sink.append('"a"', 1)
    assert sink.append("", 2)["bytes"] == 0
    sink.append('"c"', 3)
    assert _read(path) == '"a"\r\n"c"'


def test_local_sink_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "dir" / "out.csv"
    sinks.LocalFileSink(path).append('"a"', 1)
    assert path.exists()


def test_local_sink_os_error_is_storage_error(tmp_path):
    # a directory where the file should be
    target = tmp_path / "is_a_dir"
    target.mkdir()
    with pytest.raises(StorageError) as ei:
        sinks.LocalFileSink(target).append('"a"', 1)
    assert isinstance(ei.value.cause, OSError)


def test_build_local_sink_requires_path(ctx):
    with pytest.raises(ValueError):
        sinks.build_local_sink(ctx, {}, "\r\n")
    sink = sinks.build_local_sink(ctx, {"path": "x.csv", "truncate": False}, "\n")
    assert sink.truncate is False and sink.eol == "\n"


# ---------- S3Sink ----------


class FakeS3:
    def __init__(self, fail_on=None):
        self.puts = []
        self.fail_on = fail_on

    def put_object(self, Bucket, Key, Body, **kw):
        if self.fail_on and Key.endswith(self.fail_on):
            raise RuntimeError("AccessDenied")
        self.puts.append({"Bucket": Bucket, "Key": Key, "Body": Body, "kw": kw})
        return {"ETag": '"e"', "Key": Key}


def test_s3_sink_one_object_per_page(capture_log):
    client = FakeS3()
    sink = sinks.S3Sink(client, "bkt", prefix="2026-10-19/", log=capture_log)
    resp = sink.append('"H"\r\n"a"', 1)
    sink.append('"H"\r\n"b"', 2)
    assert [p["Key"] for p in client.puts] == ["2026-10-19/1.csv", "2026-10-19/2.csv"]
    assert client.puts[0]["Body"] == b'"H"\r\n"a"'
    assert resp == {"ETag": '"e"', "Key": "2026-10-19/1.csv"}
    assert sink.destination == "s3://bkt/2026-10-19"


def test_s3_sink_empty_block_still_puts_object():
    client = FakeS3()
    sinks.S3Sink(client, "bkt").append("", 4)
    assert client.puts[0]["Key"] == "4.csv" and client.puts[0]["Body"] == b""


def test_s3_sink_client_failure_is_storage_error():
    sink = sinks.S3Sink(FakeS3(fail_on="2.csv"), "bkt", prefix="p")
    sink.append("a", 1)
    with pytest.raises(StorageError) as ei:
        sink.append("b", 2)
    assert "s3://bkt/p/2.csv" in str(ei.value)


def test_build_s3_sink_renders_date_prefix_and_extra_args(ctx, patch_boto3):
    started = pd.Timestamp("2026-10-19T08:30:00Z")
    sink = sinks.build_s3_sink(
        ctx,
        {"bucket": "bkt", "sse": "aws:kms", "sse_kms_key_id": "k1"},
        started,
    )
    assert sink.prefix == "2026-10-19"
    sink.append('"a"', 3)
    last = patch_boto3[-1]
    assert last["Bucket"] == "bkt" and last["Key"] == "2026-10-19/3.csv"
    assert last["kw"]["ContentType"] == "text/csv"
    assert last["kw"]["ServerSideEncryption"] == "aws:kms"
    assert last["kw"]["SSEKMSKeyId"] == "k1"


def test_build_s3_sink_custom_prefix_template(ctx, patch_boto3):
    started = pd.Timestamp("2026-10-19T08:30:00Z")
    sink = sinks.build_s3_sink(
        ctx, {"bucket": "bkt", "prefix": "{env}/{job}/{started:%Y%m%dT%H%M}"}, started
    )
    assert sink.key_for(1) == "prod/stores/20261019T0830/1.csv"


def test_build_s3_sink_requires_bucket(ctx, patch_boto3):
    with pytest.raises(ValueError):
        sinks.build_s3_sink(ctx, {"bucket": "  "}, pd.Timestamp.now(tz="UTC"))


def test_build_s3_sink_rejects_unresolved_bucket_placeholder(ctx, patch_boto3):
    with pytest.raises(ValueError) as ei:
        sinks.build_s3_sink(
            ctx, {"bucket": "${EXPORT_BUCKET}"}, pd.Timestamp.now(tz="UTC")
        )
    assert "EXPORT_BUCKET" in str(ei.value)
