"""Contentful store tests against a mocked management API."""

import json

import httpx
import pytest

from bulkedit.contracts import Record, RecordSys
from bulkedit.errors import StoreError
from bulkedit.stores.contentful import ContentfulRecordStore, record_from_api

BASE = "/spaces/space1/environments/master"


def entry_payload(record_id="e1", version=4, published_version=None, fields=None):
    sys = {
        "id": record_id,
        "version": version,
        "contentType": {"sys": {"id": "article"}},
    }
    if published_version is not None:
        sys["publishedVersion"] = published_version
    return {"sys": sys, "fields": fields or {}}


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.responses[key]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


def make_store(responses):
    recorder = Recorder(responses)
    store = ContentfulRecordStore(
        space_id="space1",
        access_token="token",
        transport=httpx.MockTransport(recorder),
    )
    return store, recorder


def test_record_from_api_maps_status_fields():
    record = record_from_api(
        {
            "sys": {
                "id": "e1",
                "version": 7,
                "publishedVersion": 5,
                "archivedVersion": 6,
                "contentType": {"sys": {"id": "article"}},
            },
            "fields": {"title": {"en-US": "Hi"}},
        }
    )
    assert record.id == "e1"
    assert record.sys.content_type == "article"
    assert record.status == "archived"
    assert record.fields["title"]["en-US"] == "Hi"


def test_store_requires_credentials():
    with pytest.raises(ValueError):
        ContentfulRecordStore(space_id="", access_token="token")


@pytest.mark.asyncio
async def test_list_records_sends_filter_and_paging():
    store, recorder = make_store(
        {
            ("GET", f"{BASE}/entries"): (
                200,
                {
                    "total": 3,
                    "skip": 2,
                    "limit": 2,
                    "items": [{"sys": {"id": "e3"}}],
                },
            )
        }
    )

    page = await store.list_records(
        {"content_type": "article"}, limit=2, skip=2, select="sys.id"
    )
    await store.disconnect()

    assert page.total == 3
    assert [item.id for item in page.items] == ["e3"]
    request = recorder.requests[0]
    assert request.url.params["content_type"] == "article"
    assert request.url.params["limit"] == "2"
    assert request.url.params["skip"] == "2"
    assert request.url.params["select"] == "sys.id"
    assert request.headers["Authorization"] == "Bearer token"


@pytest.mark.asyncio
async def test_update_sends_version_and_fields():
    store, recorder = make_store(
        {("PUT", f"{BASE}/entries/e1"): (200, entry_payload(version=5))}
    )
    record = Record(
        sys=RecordSys(id="e1", version=4), fields={"title": {"en-US": "New"}}
    )

    updated = await store.update_record(record)
    await store.disconnect()

    assert updated.sys.version == 5
    request = recorder.requests[0]
    assert request.headers["X-Contentful-Version"] == "4"
    assert json.loads(request.content) == {"fields": {"title": {"en-US": "New"}}}
    assert request.headers["Content-Type"] == "application/vnd.contentful.management.v1+json"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method_name, http_method, suffix",
    [
        ("publish", "PUT", "/published"),
        ("unpublish", "DELETE", "/published"),
        ("archive", "PUT", "/archived"),
        ("unarchive", "DELETE", "/archived"),
    ],
)
async def test_status_endpoints(method_name, http_method, suffix):
    store, recorder = make_store(
        {(http_method, f"{BASE}/entries/e1{suffix}"): (200, entry_payload(version=6))}
    )
    record = Record(sys=RecordSys(id="e1", version=5))

    result = await getattr(store, method_name)(record)
    await store.disconnect()

    assert result.sys.version == 6
    assert recorder.requests[0].headers["X-Contentful-Version"] == "5"


@pytest.mark.asyncio
async def test_delete_accepts_empty_response():
    store, recorder = make_store({("DELETE", f"{BASE}/entries/e1"): (204, None)})

    assert await store.delete(Record(sys=RecordSys(id="e1", version=2))) is None
    await store.disconnect()
    assert recorder.requests[0].headers["X-Contentful-Version"] == "2"


@pytest.mark.asyncio
async def test_http_errors_become_store_errors():
    store, _ = make_store(
        {
            ("PUT", f"{BASE}/entries/e1/published"): (
                409,
                {"sys": {"id": "VersionMismatch"}},
            )
        }
    )

    with pytest.raises(StoreError) as exc_info:
        await store.publish(Record(sys=RecordSys(id="e1", version=1)))
    await store.disconnect()

    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_default_locale_is_fetched_once():
    store, recorder = make_store(
        {
            ("GET", f"{BASE}/locales"): (
                200,
                {
                    "items": [
                        {"code": "de-DE", "default": False},
                        {"code": "en-GB", "default": True},
                    ]
                },
            )
        }
    )

    assert await store.get_default_locale() == "en-GB"
    assert await store.get_default_locale() == "en-GB"
    await store.disconnect()
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_missing_default_locale_raises():
    store, _ = make_store(
        {("GET", f"{BASE}/locales"): (200, {"items": [{"code": "de-DE"}]})}
    )

    with pytest.raises(StoreError):
        await store.get_default_locale()
    await store.disconnect()
