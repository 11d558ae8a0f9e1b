import httpx
import pytest

from kiosk.errors import UpstreamError
from kiosk.storage import UploadThingStorage


def storage_with(handler):
    return UploadThingStorage("https://storage.test/", "secret-key", transport=httpx.MockTransport(handler))


def test_delete_files_confirms_every_key_on_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers["x-uploadthing-api-key"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"success": True, "deletedCount": 2})

    result = storage_with(handler).delete_files(["a", "b"])

    assert result.success is True
    assert result.deleted == {"a", "b"}
    assert seen["url"] == "https://storage.test/v6/deleteFiles"
    assert seen["api_key"] == "secret-key"
    assert b'"fileKeys"' in seen["body"]


def test_delete_files_confirms_nothing_on_partial_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "deletedCount": 1})

    result = storage_with(handler).delete_files(["a", "b", "c"])

    assert result.success is False
    assert result.deleted == set()
    assert result.failed == ["a", "b", "c"]


def test_delete_files_raises_upstream_error_on_http_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(UpstreamError):
        storage_with(handler).delete_files(["a"])


def test_delete_files_skips_request_for_empty_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert storage_with(handler).delete_files([]).success is True
