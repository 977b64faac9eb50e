"""
对象存储服务单元测试
使用内存适配器与故障注入验证上传、下载、存在性、删除、列举语义
"""

import asyncio

import pytest

from app.core.storage.adapters.memory import MemoryStorageAdapter
from app.core.storage.exceptions import (
    InvalidKeyError,
    InvalidPayloadError,
    ObjectNotFoundError,
    ReadFailureReason,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from app.core.storage.models import ExistenceState, ListResult
from app.core.storage.service import ObjectStoreService
from tests.utils import RecordingSleep, build_store


class ConcurrencyTrackingAdapter(MemoryStorageAdapter):
    """记录 put 的最大并发数"""

    def __init__(self):
        super().__init__(latency=0.01)
        self.active = 0
        self.max_active = 0

    async def put(self, key, data, content_type, cache_control=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            return await super().put(key, data, content_type, cache_control)
        finally:
            self.active -= 1


@pytest.mark.unit
@pytest.mark.storage
class TestInit:
    """初始化测试"""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_check(self):
        adapter = MemoryStorageAdapter(latency=0.01)
        store = build_store(adapter)

        await asyncio.gather(*(store.init() for _ in range(5)))
        await store.init()

        assert adapter.calls["list"] == 1
        assert store.is_ready

    @pytest.mark.asyncio
    async def test_failed_check_is_not_memoized(self, memory_adapter, store):
        memory_adapter.inject_fault("list", times=1)

        with pytest.raises(StorageUnavailableError):
            await store.init()
        assert not store.is_ready

        await store.init()
        assert store.is_ready
        assert memory_adapter.calls["list"] == 2

    @pytest.mark.asyncio
    async def test_operations_initialize_lazily(self, memory_adapter, store):
        await store.upload("temp/a/x.png", b"data")
        assert store.is_ready
        assert memory_adapter.calls["list"] == 1

    @pytest.mark.asyncio
    async def test_upload_when_unreachable_raises_write_error(self, memory_adapter, store):
        memory_adapter.inject_fault("list")

        with pytest.raises(StorageWriteError):
            await store.upload("temp/a/x.png", b"data")
        assert memory_adapter.calls["put"] == 0


@pytest.mark.unit
@pytest.mark.storage
class TestUploadDownload:
    """上传与下载测试"""

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        payload = bytes(range(256)) * 4

        result = await store.upload("drafts/42/shirt.png", payload)
        downloaded = await store.download_as_buffer("drafts/42/shirt.png")

        assert result.object_key == "drafts/42/shirt.png"
        assert result.url == "/api/files/drafts/42/shirt.png"
        assert result.size == len(payload)
        assert result.to_dict() == {"url": "/api/files/drafts/42/shirt.png", "objectKey": "drafts/42/shirt.png"}
        assert downloaded.data == payload
        assert downloaded.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_explicit_content_type_and_cache_control(self, memory_adapter, store):
        await store.upload("temp/a/blob", b"x", content_type="image/webp", cache_control="no-store")

        stored = (await memory_adapter.head("temp/a/blob")).value
        assert stored.content_type == "image/webp"
        assert stored.cache_control == "no-store"

    @pytest.mark.asyncio
    async def test_default_cache_control(self, memory_adapter, store):
        await store.upload("temp/a/x.png", b"x")

        stored = (await memory_adapter.head("temp/a/x.png")).value
        assert stored.cache_control == store.default_cache_control

    @pytest.mark.asyncio
    async def test_upload_retries_transient_put_failures(self, memory_adapter, store, recording_sleep):
        memory_adapter.inject_fault("put", times=2)

        await store.upload("temp/a/x.png", b"data")

        assert memory_adapter.calls["put"] == 3
        assert recording_sleep.delays == pytest.approx([0.2, 0.4])
        assert memory_adapter.raw("temp/a/x.png") == b"data"

    @pytest.mark.asyncio
    async def test_upload_fails_when_write_cannot_be_verified(self, memory_adapter, store):
        memory_adapter.inject_fault("head", key="temp/a/x.png")

        with pytest.raises(StorageWriteError) as exc_info:
            await store.upload("temp/a/x.png", b"data")

        assert memory_adapter.calls["put"] == 4
        assert exc_info.value.key == "temp/a/x.png"
        assert exc_info.value.details["attempts"] == 4

    @pytest.mark.asyncio
    async def test_upload_rejects_invalid_key(self, memory_adapter, store):
        with pytest.raises(InvalidKeyError):
            await store.upload("../etc/passwd", b"data")
        assert memory_adapter.calls["put"] == 0

    @pytest.mark.asyncio
    async def test_download_missing_object_is_not_found(self, memory_adapter, store):
        with pytest.raises(StorageReadError) as exc_info:
            await store.download_as_buffer("drafts/1/missing.png")

        assert isinstance(exc_info.value, ObjectNotFoundError)
        assert exc_info.value.is_not_found
        assert memory_adapter.calls["get"] == 1

    @pytest.mark.asyncio
    async def test_download_transient_failure_is_unavailable(self, memory_adapter, store):
        await store.upload("drafts/1/a.png", b"data")
        memory_adapter.inject_fault("get")

        with pytest.raises(StorageReadError) as exc_info:
            await store.download_as_buffer("drafts/1/a.png")

        assert exc_info.value.reason == ReadFailureReason.UNAVAILABLE
        assert not exc_info.value.is_not_found
        assert memory_adapter.calls["get"] == 4

    @pytest.mark.asyncio
    async def test_download_falls_back_to_extension(self, memory_adapter, store):
        await memory_adapter.put("temp/a/photo.webp", b"x", None)
        await memory_adapter.put("temp/a/data.unknownext", b"x", None)

        assert (await store.download_as_buffer("temp/a/photo.webp")).content_type == "image/webp"
        assert (await store.download_as_buffer("temp/a/data.unknownext")).content_type == "application/octet-stream"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", ["application/octet-stream", "image/gif", "text/plain; charset=utf-8"])
    async def test_download_returns_uploaded_content_type(self, store, content_type):
        await store.upload("drafts/1/blob.png", b"12345", content_type=content_type)

        downloaded = await store.download_as_buffer("drafts/1/blob.png")

        assert downloaded.content_type == content_type
        assert downloaded.data == b"12345"

    def test_detect_content_type_precedence(self):
        detect = ObjectStoreService.detect_content_type
        assert detect("a.png", explicit="image/gif", reported="image/jpeg") == "image/gif"
        assert detect("a.png", reported="image/jpeg") == "image/jpeg"
        assert detect("a.png", reported="application/octet-stream") == "application/octet-stream"
        assert detect("a.png") == "image/png"
        assert detect("a.PNG") == "image/png"
        assert detect("README") == "application/octet-stream"


@pytest.mark.unit
@pytest.mark.storage
class TestConvenienceUploads:
    """带命名空间的上传测试"""

    @pytest.mark.asyncio
    async def test_upload_temp_file(self, memory_adapter, store):
        result = await store.upload_temp_file(b"x", "Photo One.JPG", identifier="sess-1")

        assert result.object_key.startswith("temp/sess-1/photo-one-")
        assert result.object_key.endswith(".JPG")
        assert result.content_type == "image/jpeg"
        stored = (await memory_adapter.head(result.object_key)).value
        assert stored.cache_control == store.temp_cache_control

    @pytest.mark.asyncio
    async def test_upload_draft_image(self, store):
        result = await store.upload_draft_image(b"x", "shirt.png", 42)
        assert result.object_key.startswith("drafts/42/shirt-")
        assert await store.exists(result.object_key)

    @pytest.mark.asyncio
    async def test_upload_product_image(self, memory_adapter, store):
        result = await store.upload_product_image(b"x", "main.webp", 7)

        assert result.object_key.startswith("products/7/main-")
        stored = (await memory_adapter.head(result.object_key)).value
        assert stored.cache_control == store.product_cache_control

    @pytest.mark.asyncio
    async def test_same_filename_does_not_collide(self, store):
        first = await store.upload_draft_image(b"1", "shirt.png", 42)
        second = await store.upload_draft_image(b"2", "shirt.png", 42)
        assert first.object_key != second.object_key


@pytest.mark.unit
@pytest.mark.storage
class TestExistsAndDelete:
    """存在性与删除测试"""

    @pytest.mark.asyncio
    async def test_exists(self, store):
        await store.upload("temp/a/x.png", b"x")
        assert await store.exists("temp/a/x.png")
        assert not await store.exists("temp/a/missing.png")

    @pytest.mark.asyncio
    async def test_exists_is_false_on_transient_error(self, memory_adapter, store):
        await store.upload("temp/a/x.png", b"x")
        memory_adapter.inject_fault("head", key="temp/a/x.png")

        assert await store.exists("temp/a/x.png") is False
        assert await store.probe("temp/a/x.png") == ExistenceState.UNKNOWN

    @pytest.mark.asyncio
    async def test_probe_states(self, store):
        await store.upload("temp/a/x.png", b"x")
        assert await store.probe("temp/a/x.png") == ExistenceState.PRESENT
        assert await store.probe("temp/a/y.png") == ExistenceState.ABSENT
        assert await store.probe("../bad") == ExistenceState.ABSENT

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store):
        await store.upload("temp/a/x.png", b"x")

        assert await store.delete("temp/a/x.png") is True
        assert await store.delete("temp/a/x.png") is True
        assert await store.delete("temp/a/never-existed.png") is True
        assert not await store.exists("temp/a/x.png")

    @pytest.mark.asyncio
    async def test_delete_swallows_persistent_failure(self, memory_adapter, store):
        await store.upload("temp/a/x.png", b"x")
        memory_adapter.inject_fault("delete")

        assert await store.delete("temp/a/x.png") is False
        assert memory_adapter.calls["delete"] == 4
        assert memory_adapter.raw("temp/a/x.png") == b"x"

    @pytest.mark.asyncio
    async def test_delete_verifies_absence(self, memory_adapter, store):
        await store.upload("temp/a/x.png", b"x")
        memory_adapter.pin_key("temp/a/x.png")

        assert await store.delete("temp/a/x.png") is False

    @pytest.mark.asyncio
    async def test_delete_rejects_invalid_key_without_raising(self, memory_adapter, store):
        assert await store.delete("/etc/passwd") is False
        assert memory_adapter.calls["delete"] == 0

    @pytest.mark.asyncio
    async def test_delete_many(self, memory_adapter, store):
        for name in ("a", "b", "c"):
            await store.upload(f"temp/x/{name}.png", b"x")
        memory_adapter.inject_fault("delete", key="temp/x/b.png")

        result = await store.delete_many(["temp/x/a.png", "temp/x/b.png", "temp/x/c.png", "temp/x/a.png"])

        assert result.deleted == ["temp/x/a.png", "temp/x/c.png"]
        assert result.failed == ["temp/x/b.png"]


@pytest.mark.unit
@pytest.mark.storage
class TestListByPrefix:
    """列举测试"""

    @pytest.fixture
    def keys(self):
        return [
            "drafts/4/a.png",
            "drafts/42/a.png",
            "drafts/42/b.png",
            "drafts/42/thumbs/a.png",
            "drafts/42/thumbs/b.png",
            "products/7/a.png",
        ]

    @pytest.mark.asyncio
    async def test_recursive(self, memory_adapter, store, keys):
        for key in keys:
            await memory_adapter.put(key, b"x", "image/png")

        result = await store.list_by_prefix("drafts/42/")

        assert result.objects == [
            "drafts/42/a.png",
            "drafts/42/b.png",
            "drafts/42/thumbs/a.png",
            "drafts/42/thumbs/b.png",
        ]
        assert result.prefixes == []

    @pytest.mark.asyncio
    async def test_non_recursive(self, memory_adapter, store, keys):
        for key in keys:
            await memory_adapter.put(key, b"x", "image/png")

        result = await store.list_by_prefix("drafts/42/", recursive=False)

        assert result.objects == ["drafts/42/a.png", "drafts/42/b.png"]
        assert result.prefixes == ["drafts/42/thumbs/"]

    @pytest.mark.asyncio
    async def test_every_key_starts_with_prefix(self, memory_adapter, store, keys):
        for key in keys:
            await memory_adapter.put(key, b"x", "image/png")

        result = await store.list_by_prefix("drafts/4")

        assert all(key.startswith("drafts/4") for key in result.objects)
        assert "products/7/a.png" not in result.objects

    @pytest.mark.asyncio
    async def test_error_yields_empty_result(self, memory_adapter, store):
        await store.init()
        memory_adapter.inject_fault("list")

        assert await store.list_by_prefix("drafts/42/") == ListResult()

    @pytest.mark.asyncio
    async def test_invalid_prefix_yields_empty_result(self, store):
        assert await store.list_by_prefix("../") == ListResult()


@pytest.mark.unit
@pytest.mark.storage
class TestSameKeyWrites:
    """同键写入串行化测试"""

    @pytest.mark.asyncio
    async def test_same_key_writes_do_not_interleave(self):
        adapter = ConcurrencyTrackingAdapter()
        store = build_store(adapter)

        await asyncio.gather(
            store.upload("acme/a/b/c_1/x.png", b"first"),
            store.upload("acme/a/b/c_1/x.png", b"second"),
        )

        assert adapter.max_active == 1
        assert adapter.raw("acme/a/b/c_1/x.png") in (b"first", b"second")
        assert store._key_locks == {}

    @pytest.mark.asyncio
    async def test_different_keys_write_concurrently(self):
        adapter = ConcurrencyTrackingAdapter()
        store = build_store(adapter, sleep=RecordingSleep())

        await asyncio.gather(
            store.upload("temp/a/1.png", b"1"),
            store.upload("temp/a/2.png", b"2"),
        )

        assert adapter.max_active == 2


@pytest.mark.unit
@pytest.mark.storage
class TestMetadata:
    """元数据与大小测试"""

    @pytest.mark.asyncio
    async def test_get_metadata(self, store):
        await store.upload("products/7/a.png", b"12345", cache_control="no-cache")

        metadata = await store.get_metadata("products/7/a.png")

        assert metadata.size == 5
        assert metadata.content_type == "image/png"
        assert metadata.cache_control == "no-cache"

    @pytest.mark.asyncio
    async def test_get_metadata_missing_is_none(self, memory_adapter, store):
        assert await store.get_metadata("products/7/missing.png") is None
        assert memory_adapter.calls["head"] == 1

    @pytest.mark.asyncio
    async def test_get_metadata_retries_then_raises(self, memory_adapter, store):
        memory_adapter.inject_fault("head", key="products/7/a.png")

        with pytest.raises(StorageReadError) as exc_info:
            await store.get_metadata("products/7/a.png")

        assert exc_info.value.reason == ReadFailureReason.UNAVAILABLE
        assert memory_adapter.calls["head"] == 4

    @pytest.mark.asyncio
    async def test_get_metadata_rejects_invalid_key(self, store):
        with pytest.raises(InvalidKeyError):
            await store.get_metadata("../etc/passwd")

    @pytest.mark.asyncio
    async def test_get_size(self, memory_adapter, store):
        await store.upload("products/7/a.png", b"12345")

        assert await store.get_size("products/7/a.png") == 5
        assert await store.get_size("products/7/missing.png") is None
        assert await store.get_size("../bad") is None

        memory_adapter.inject_fault("head", key="products/7/a.png")
        assert await store.get_size("products/7/a.png") is None


@pytest.mark.unit
@pytest.mark.storage
class TestUploadFromBase64:
    """data URL 上传测试"""

    @pytest.mark.asyncio
    async def test_upload_data_url(self, memory_adapter, store):
        result = await store.upload_from_base64("temp/sess-1/pixel.gif", "data:image/gif;base64,R0lGODlh")

        assert result.object_key == "temp/sess-1/pixel.gif"
        assert result.content_type == "image/gif"
        assert memory_adapter.raw("temp/sess-1/pixel.gif") == b"GIF89a"

    @pytest.mark.asyncio
    async def test_content_type_comes_from_data_url(self, memory_adapter, store):
        await store.upload_from_base64("temp/sess-1/blob.png", "data:image/svg+xml;base64,PHN2Zy8+")

        stored = (await memory_adapter.head("temp/sess-1/blob.png")).value
        assert stored.content_type == "image/svg+xml"
        assert memory_adapter.raw("temp/sess-1/blob.png") == b"<svg/>"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data_url", [
        "",
        "R0lGODlh",
        "data:image/gif,R0lGODlh",
        "data:image/gif;base64,not*base64",
    ])
    async def test_invalid_data_url(self, memory_adapter, store, data_url):
        with pytest.raises(InvalidPayloadError):
            await store.upload_from_base64("temp/sess-1/pixel.gif", data_url)

        assert memory_adapter.calls["put"] == 0


@pytest.mark.unit
@pytest.mark.storage
class TestProbeRetry:
    """存在性检查重试测试"""

    @pytest.mark.asyncio
    async def test_transient_head_failure_is_retried(self, memory_adapter, store, recording_sleep):
        await store.upload("temp/a/x.png", b"x")
        memory_adapter.inject_fault("head", key="temp/a/x.png", times=2)

        assert await store.probe("temp/a/x.png") == ExistenceState.PRESENT
        assert recording_sleep.delays == pytest.approx([0.2, 0.4])

    @pytest.mark.asyncio
    async def test_unknown_after_retries_exhausted(self, memory_adapter, store):
        memory_adapter.inject_fault("head", key="temp/a/x.png")

        assert await store.probe("temp/a/x.png") == ExistenceState.UNKNOWN
        assert memory_adapter.calls["head"] == 4

    @pytest.mark.asyncio
    async def test_absent_is_not_retried(self, memory_adapter, store):
        assert await store.probe("temp/a/missing.png") == ExistenceState.ABSENT
        assert memory_adapter.calls["head"] == 1
