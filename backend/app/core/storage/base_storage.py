"""
存储适配器抽象基类
定义对象存储后端需要实现的最小接口

适配器只做一件事：把一次远程调用翻译成 Result。
重试、写后校验、内容类型推断、URL 生成等都由 ObjectStoreService 负责。
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from app.core.storage.models import Err, ObjectMetadata, Ok, Result, StoredObject


class ObjectStoreAdapter(ABC):
    """对象存储适配器抽象基类"""

    # 适配器名称，用于工厂模式注册
    ADAPTER_NAME: str = ""

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None
    ) -> Result[None]:
        """
        写入对象

        Args:
            key: 对象键
            data: 对象内容
            content_type: 内容类型
            cache_control: 缓存控制头（可选）
        """

    @abstractmethod
    async def get(self, key: str) -> Result[StoredObject]:
        """读取对象内容与元数据，不存在时返回 NOT_FOUND 错误"""

    @abstractmethod
    async def head(self, key: str) -> Result[ObjectMetadata]:
        """读取对象元数据，不存在时返回 NOT_FOUND 错误"""

    @abstractmethod
    async def delete(self, key: str) -> Result[None]:
        """删除对象，对象不存在时同样返回成功"""

    @abstractmethod
    async def list(self, prefix: str, limit: Optional[int] = None) -> Result[List[str]]:
        """
        列举以 prefix 开头的全部对象键

        Args:
            prefix: 键前缀
            limit: 最多返回条数（可选）

        Returns:
            存储端顺序的对象键列表
        """

    async def ping(self) -> Result[None]:
        """校验存储可达，默认通过一次最小列举实现"""
        result = await self.list("", limit=1)
        if isinstance(result, Err):
            return result
        return Ok(None)


__all__ = ['ObjectStoreAdapter']
