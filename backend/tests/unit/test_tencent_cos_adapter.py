"""
腾讯云COS适配器单元测试
使用 mock 客户端，不访问真实COS
"""

from datetime import datetime, timezone

import pytest

from app.core.config.cos_config import COSConfig, get_cos_endpoint, validate_cos_config
from app.core.storage import create_adapter, get_storage_service, list_available_adapters
from app.core.storage.adapters.memory import MemoryStorageAdapter
from app.core.storage.adapters.tencent_cos import TencentCosAdapter
from app.core.storage.exceptions import ConfigurationError
from app.core.storage.models import AdapterErrorKind, Err, Ok
from tests.utils import FakeCosServiceError, MockBuilder, cos_page

CONFIG = COSConfig(secret_id="id", secret_key="key", bucket="test-1250000000", region="ap-shanghai")


@pytest.fixture
def cos_client():
    return MockBuilder.create_mock_cos_client()


@pytest.fixture
def adapter(cos_client):
    return TencentCosAdapter(config=CONFIG, client=cos_client)


@pytest.mark.unit
@pytest.mark.storage
class TestCosConfig:
    """COS配置测试"""

    def test_incomplete_config_rejected(self):
        assert not validate_cos_config(COSConfig(secret_id="id", secret_key="key"))
        with pytest.raises(ConfigurationError):
            TencentCosAdapter(config=COSConfig())

    def test_endpoint(self):
        assert get_cos_endpoint(CONFIG) == "test-1250000000.cos.ap-shanghai.myqcloud.com"


@pytest.mark.unit
@pytest.mark.storage
class TestTencentCosAdapter:
    """适配器调用与错误映射测试"""

    @pytest.mark.asyncio
    async def test_put(self, adapter, cos_client):
        result = await adapter.put("drafts/1/a.png", b"data", "image/png", "no-cache")

        assert isinstance(result, Ok)
        cos_client.put_object.assert_called_once_with(
            Bucket="test-1250000000",
            Key="drafts/1/a.png",
            Body=b"data",
            ContentType="image/png",
            CacheControl="no-cache"
        )

    @pytest.mark.asyncio
    async def test_get(self, adapter):
        result = await adapter.get("drafts/1/a.png")

        assert isinstance(result, Ok)
        assert result.value.data == b"data"
        assert result.value.metadata.size == 4
        assert result.value.metadata.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_head_parses_headers(self, adapter, cos_client):
        cos_client.head_object.return_value = {
            "content-type": "image/webp",
            "Content-Length": "128",
            "ETag": '"abc"',
            "Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT",
            "Cache-Control": "public, max-age=60",
            "x-cos-meta-origin": "upload",
        }

        metadata = (await adapter.head("drafts/1/a.webp")).value

        assert metadata.content_type == "image/webp"
        assert metadata.size == 128
        assert metadata.etag == "abc"
        assert metadata.cache_control == "public, max-age=60"
        assert metadata.last_modified == datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)
        assert metadata.metadata == {"origin": "upload"}

    @pytest.mark.parametrize("status,kind", [
        (404, AdapterErrorKind.NOT_FOUND),
        (403, AdapterErrorKind.PERMISSION),
        (500, AdapterErrorKind.TRANSIENT),
        (503, AdapterErrorKind.TRANSIENT),
    ])
    @pytest.mark.asyncio
    async def test_service_error_mapping(self, adapter, cos_client, status, kind):
        cos_client.head_object.side_effect = FakeCosServiceError(status)

        result = await adapter.head("drafts/1/a.png")

        assert isinstance(result, Err)
        assert result.error.kind == kind

    @pytest.mark.asyncio
    async def test_client_error_is_transient(self, adapter, cos_client):
        cos_client.get_object.side_effect = ConnectionError("timeout")

        result = await adapter.get("drafts/1/a.png")

        assert result.error.kind == AdapterErrorKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_delete_missing_object_is_ok(self, adapter, cos_client):
        cos_client.delete_object.side_effect = FakeCosServiceError(404)
        assert isinstance(await adapter.delete("drafts/1/a.png"), Ok)

    @pytest.mark.asyncio
    async def test_delete_failure(self, adapter, cos_client):
        cos_client.delete_object.side_effect = FakeCosServiceError(500)
        assert isinstance(await adapter.delete("drafts/1/a.png"), Err)

    @pytest.mark.asyncio
    async def test_list_follows_pagination(self, adapter, cos_client):
        cos_client.list_objects.side_effect = [
            cos_page(["drafts/1/a.png", "drafts/1/b.png"], truncated=True, next_marker="drafts/1/b.png"),
            cos_page(["drafts/1/c.png"]),
        ]

        result = await adapter.list("drafts/1/")

        assert result.value == ["drafts/1/a.png", "drafts/1/b.png", "drafts/1/c.png"]
        assert cos_client.list_objects.call_count == 2
        assert cos_client.list_objects.call_args.kwargs["Marker"] == "drafts/1/b.png"

    @pytest.mark.asyncio
    async def test_list_respects_limit(self, adapter, cos_client):
        cos_client.list_objects.return_value = cos_page(["drafts/1/a.png"])

        await adapter.list("drafts/1/", limit=1)

        assert cos_client.list_objects.call_args.kwargs["MaxKeys"] == 1

    @pytest.mark.asyncio
    async def test_ping_uses_list(self, adapter, cos_client):
        assert isinstance(await adapter.ping(), Ok)
        cos_client.list_objects.side_effect = FakeCosServiceError(403)
        assert isinstance(await adapter.ping(), Err)


@pytest.mark.unit
@pytest.mark.storage
class TestAdapterFactory:
    """适配器工厂测试"""

    def test_builtin_adapters_registered(self):
        assert {"memory", "tencent_cos"} <= set(list_available_adapters())

    def test_unknown_adapter(self):
        with pytest.raises(ConfigurationError):
            create_adapter("does-not-exist")

    def test_create_memory_adapter(self):
        assert isinstance(create_adapter("memory"), MemoryStorageAdapter)

    def test_storage_service_from_settings(self):
        store = get_storage_service("memory")
        assert isinstance(store.adapter, MemoryStorageAdapter)
        assert not store.is_ready
