"""Tests for the Cloudinary asset storage client."""

import hashlib

import httpx
import pytest
import respx

from yarnlog.clients.assets import CloudinaryAssetStore
from yarnlog.config import Settings
from yarnlog.errors import StorageCollaboratorFailure

BASE_URL = "https://api.cloudinary.com/v1_1/demo"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        jwt_secret="secret",  # noqa: S106
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key123",
        cloudinary_api_secret="shh",  # noqa: S106
    )


@pytest.fixture
def store(settings):
    return CloudinaryAssetStore(settings)


def test_signature_is_sha1_of_sorted_params_and_secret(store):
    params = {"timestamp": "1700000000", "public_id": "yarnlog/abc"}
    expected = hashlib.sha1(  # noqa: S324
        b"public_id=yarnlog/abc&timestamp=1700000000shh"
    ).hexdigest()
    assert store._sign(params) == expected


@pytest.mark.asyncio
async def test_destroy_success(store):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/image/destroy").mock(
            return_value=httpx.Response(httpx.codes.OK, json={"result": "ok"})
        )

        result = await store.destroy("yarnlog/abc")

        assert result == {"result": "ok"}
        assert route.called
        body = route.calls.last.request.content.decode()
        assert "public_id=yarnlog%2Fabc" in body
        assert "api_key=key123" in body
        assert "signature=" in body


@pytest.mark.asyncio
async def test_destroy_not_found_is_failure(store):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/image/destroy").mock(
            return_value=httpx.Response(httpx.codes.OK, json={"result": "not found"})
        )

        with pytest.raises(StorageCollaboratorFailure) as exc_info:
            await store.destroy("yarnlog/missing")

    assert exc_info.value.public_id == "yarnlog/missing"
    assert "not found" in exc_info.value.message


@pytest.mark.asyncio
async def test_destroy_http_error_is_failure(store):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/image/destroy").mock(
            return_value=httpx.Response(httpx.codes.UNAUTHORIZED, json={"error": "bad key"})
        )

        with pytest.raises(StorageCollaboratorFailure):
            await store.destroy("yarnlog/abc")


@pytest.mark.asyncio
async def test_destroy_transport_error_is_failure(store):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/image/destroy").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(StorageCollaboratorFailure) as exc_info:
            await store.destroy("yarnlog/abc")

    assert exc_info.value.message == "asset storage request failed"


@pytest.mark.asyncio
async def test_destroy_without_credentials_makes_no_request():
    settings = Settings(database_url="sqlite+aiosqlite://", jwt_secret="secret")  # noqa: S106
    store = CloudinaryAssetStore(settings)

    async with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
        route = respx_mock.post("/image/destroy")

        with pytest.raises(StorageCollaboratorFailure):
            await store.destroy("yarnlog/abc")

        assert not route.called
