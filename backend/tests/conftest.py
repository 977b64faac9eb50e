"""
测试配置和fixtures
为所有测试提供共享的配置和fixtures

单元测试全部使用内存适配器，不依赖外部服务
"""

import pytest

from app.core.storage.adapters.memory import MemoryStorageAdapter
from tests.utils import (
    InMemoryDraftRepository,
    InMemoryProductImageRepository,
    RecordingSleep,
    build_store,
)


@pytest.fixture
def memory_adapter():
    """内存存储适配器"""
    return MemoryStorageAdapter()


@pytest.fixture
def recording_sleep():
    """记录退避时间的 sleep"""
    return RecordingSleep()


@pytest.fixture
def store(memory_adapter, recording_sleep):
    """使用内存适配器的对象存储服务"""
    return build_store(memory_adapter, sleep=recording_sleep)


@pytest.fixture
def draft_repository():
    """空的草稿Repository"""
    return InMemoryDraftRepository()


@pytest.fixture
def product_image_repository():
    """空的商品图片Repository"""
    return InMemoryProductImageRepository()


# 测试标记配置
def pytest_configure(config):
    """配置pytest标记"""
    config.addinivalue_line("markers", "unit: 单元测试")
    config.addinivalue_line("markers", "storage: 对象存储相关测试")
    config.addinivalue_line("markers", "migration: 草稿图片迁移与清理测试")
    config.addinivalue_line("markers", "api: HTTP接口测试")
    config.addinivalue_line("markers", "logging: 日志系统测试")
