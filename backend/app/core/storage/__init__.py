"""
存储服务模块
提供统一的对象存储访问接口，支持多种存储适配器
"""

from typing import Optional

from app.core.config import settings
from app.core.storage.adapters.memory import MemoryStorageAdapter
from app.core.storage.adapters.tencent_cos import TencentCosAdapter
from app.core.storage.base_storage import ObjectStoreAdapter
from app.core.storage.exceptions import *
from app.core.storage.factory import (
    create_adapter,
    list_available_adapters,
    register_adapter,
)
from app.core.storage.models import *
from app.core.storage.retry import RetryPolicy, with_retry
from app.core.storage.service import ObjectStoreService

# 自动注册内置适配器
register_adapter(MemoryStorageAdapter.ADAPTER_NAME, MemoryStorageAdapter)
register_adapter(TencentCosAdapter.ADAPTER_NAME, TencentCosAdapter)


def get_storage_service(adapter_name: Optional[str] = None) -> ObjectStoreService:
    """
    构建对象存储服务实例

    每次调用都返回新实例，由应用生命周期持有并注入到路由中。

    Args:
        adapter_name: 适配器名称（如 'memory', 'tencent_cos'），默认读取 storage_adapter 配置

    Raises:
        ConfigurationError: 适配器不存在或配置不完整时抛出

    Example:
        >>> store = get_storage_service()
        >>> await store.init()
    """
    adapter = create_adapter(adapter_name or settings.storage_adapter)
    return ObjectStoreService(
        adapter,
        files_prefix=settings.storage_files_prefix,
        retry_policy=RetryPolicy.from_settings(settings),
    )


__all__ = [
    # 工厂函数
    'get_storage_service',
    'create_adapter',
    'list_available_adapters',
    'register_adapter',
    # 抽象接口与服务
    'ObjectStoreAdapter',
    'ObjectStoreService',
    'RetryPolicy',
    'with_retry',
    # 适配器类
    'MemoryStorageAdapter',
    'TencentCosAdapter',
]
