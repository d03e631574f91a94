import types
from logging import Logger

import pytest
import requests

from logger.basic_logger import setup_logger


# ----- simple logger used across tests -----
class Log:
    def __init__(self):
        self.msgs = []

    def info(self, msg, *a, **k):
        self.msgs.append(("info", msg))

    def warning(self, msg, *a, **k):
        self.msgs.append(("warning", msg))

    def error(self, msg, *a, **k):
        self.msgs.append(("error", msg))

    def lines(self, level):
        return [m for lvl, m in self.msgs if lvl == level]


@pytest.fixture
def capture_log():
    return Log()


# ----- lightweight HTTP fakes -----
class FakeResponse:
    def __init__(self, *, json_data=None, status_code=200, bad_json=False):
        self._json = json_data
        self._bad_json = bad_json
        self.status_code = status_code

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """
    pages = {1: FakeResponse(...), 2: FakeResponse(...)} keyed by the
    'page' query param; a value that is an Exception is raised instead.
    """

    def __init__(self, pages):
        self._pages = dict(pages)
        self.calls = []  # tuples (url, kwargs)
        self.headers = {}
        self.proxies = {}
        self.verify = True
        self.closed = False

    def get(self, url, **kw):
        self.calls.append((url, kw))
        page = (kw.get("params") or {}).get("page")
        out = self._pages.get(page)
        if isinstance(out, Exception):
            raise out
        return out if out is not None else FakeResponse(json_data={})

    def close(self):
        self.closed = True


def api_page(records, total):
    return FakeResponse(json_data={"page_meta": {"total": total}, "results": records})


@pytest.fixture
def fake_sess():
    return FakeSession


# ----- stub boto3 for sink tests (and PagedExporter end-to-end) -----
@pytest.fixture
def patch_boto3(monkeypatch):
    uploads = []

    class Client:
        def put_object(self, Bucket, Key, Body, **kw):
            uploads.append({"Bucket": Bucket, "Key": Key, "Body": Body, "kw": kw})
            return {"ETag": f'"etag-{len(uploads)}"', "Key": Key}

    class Session:
        def __init__(self, region_name=None):
            self.region_name = region_name

        def client(self, name, endpoint_url=None):
            return Client()

    monkeypatch.setitem(
        __import__("sys").modules,
        "boto3",
        types.SimpleNamespace(session=types.SimpleNamespace(Session=Session)),
    )
    return uploads


@pytest.fixture
def column_spec():
    from api_csv_exporter.columns import build_column_spec

    return build_column_spec(
        {
            "keys": [
                {"field": "name", "title": "Store Name"},
                {"field": "contact.city", "title": "City"},
                {"field": "open.is_open", "title": "Is Open"},
            ]
        }
    )


@pytest.fixture
def exporter_config(tmp_path):
    return {
        "envs": {"prod": {"base_url": "https://api.example/v1/"}},
        "exports": {
            "request_defaults": {"headers": {"Accept": "application/json"}},
            "stores": {
                "path": "stores/",
                "page_size": 50,
                "columns": {
                    "keys": [
                        {"field": "name", "title": "Store Name"},
                        {"field": "contact.city", "title": "City"},
                    ]
                },
                "output": {
                    "local": {"path": str(tmp_path / "out.csv")},
                    "s3": {"bucket": "bkt", "prefix": "{started:%Y-%m-%d}"},
                },
            },
        },
    }


@pytest.fixture(scope="session", autouse=True)
def log() -> Logger:
    log = setup_logger()
    return log


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def page_of():
    return api_page
