"""
内存存储适配器
进程内的对象存储实现，用于本地开发与测试

支持按操作注入故障，用于模拟远程存储的暂时性错误与最终一致性问题：
    adapter.inject_fault("put", times=2)                 # 前两次 put 失败
    adapter.inject_fault("head", key="a.png")            # 针对单个键持续失败
    adapter.pin_key("drafts/1/a.png")                    # delete 返回成功但对象仍然存在
"""

import asyncio
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from hashlib import md5
from typing import Dict, List, Optional, Set

from app.core.storage.base_storage import ObjectStoreAdapter
from app.core.storage.models import (
    AdapterError,
    AdapterErrorKind,
    Err,
    ObjectMetadata,
    Ok,
    Result,
    StoredObject,
)

OPERATIONS = ("put", "get", "head", "delete", "list")


@dataclass
class FaultRule:
    """
    故障注入规则

    Attributes:
        operation: 操作名（put/get/head/delete/list）
        key: 只对该键生效，None 表示全部键
        remaining: 剩余生效次数，None 表示一直生效
        kind: 返回的错误类别
    """
    operation: str
    key: Optional[str] = None
    remaining: Optional[int] = None
    kind: AdapterErrorKind = AdapterErrorKind.TRANSIENT

    def matches(self, operation: str, key: str) -> bool:
        if self.operation != operation:
            return False
        if self.key is not None and self.key != key:
            return False
        return self.remaining is None or self.remaining > 0


class MemoryStorageAdapter(ObjectStoreAdapter):
    """内存存储适配器"""

    ADAPTER_NAME: str = "memory"

    def __init__(self, latency: float = 0.0) -> None:
        """
        Args:
            latency: 每次调用的模拟延迟（秒），0 时仍会让出一次事件循环
        """
        self.latency = latency
        self._objects: Dict[str, StoredObject] = {}
        self._faults: List[FaultRule] = []
        self._pinned: Set[str] = set()
        self.calls: Counter = Counter()

    # ==================== 测试辅助 ====================

    def inject_fault(
        self,
        operation: str,
        times: Optional[int] = None,
        key: Optional[str] = None,
        kind: AdapterErrorKind = AdapterErrorKind.TRANSIENT
    ) -> FaultRule:
        """注入故障，times 为 None 时持续生效"""
        if operation not in OPERATIONS:
            raise ValueError(f"不支持的操作: {operation}")
        rule = FaultRule(operation=operation, key=key, remaining=times, kind=kind)
        self._faults.append(rule)
        return rule

    def clear_faults(self) -> None:
        self._faults.clear()

    def pin_key(self, key: str) -> None:
        """让 delete 对该键静默失效"""
        self._pinned.add(key)

    def unpin_key(self, key: str) -> None:
        self._pinned.discard(key)

    def keys(self) -> List[str]:
        """当前保存的全部键（字典序）"""
        return sorted(self._objects)

    def raw(self, key: str) -> Optional[bytes]:
        """直接读取对象内容，不经过故障注入"""
        stored = self._objects.get(key)
        return stored.data if stored else None

    # ==================== 内部方法 ====================

    async def _enter(self, operation: str, key: str) -> Optional[Err]:
        """记录调用、模拟延迟并检查故障规则"""
        self.calls[operation] += 1
        await asyncio.sleep(self.latency)

        for rule in self._faults:
            if rule.matches(operation, key):
                if rule.remaining is not None:
                    rule.remaining -= 1
                return Err(AdapterError(rule.kind, f"注入的 {operation} 故障: {key}"))
        return None

    @staticmethod
    def _not_found(key: str) -> Err:
        return Err(AdapterError(AdapterErrorKind.NOT_FOUND, f"对象不存在: {key}"))

    # ==================== 接口实现 ====================

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None
    ) -> Result[None]:
        fault = await self._enter("put", key)
        if fault is not None:
            return fault

        payload = bytes(data)
        self._objects[key] = StoredObject(
            data=payload,
            metadata=ObjectMetadata(
                key=key,
                size=len(payload),
                content_type=content_type,
                cache_control=cache_control,
                etag=md5(payload).hexdigest(),
                last_modified=datetime.now(timezone.utc),
            )
        )
        return Ok(None)

    async def get(self, key: str) -> Result[StoredObject]:
        fault = await self._enter("get", key)
        if fault is not None:
            return fault

        stored = self._objects.get(key)
        if stored is None:
            return self._not_found(key)
        return Ok(stored)

    async def head(self, key: str) -> Result[ObjectMetadata]:
        fault = await self._enter("head", key)
        if fault is not None:
            return fault

        stored = self._objects.get(key)
        if stored is None:
            return self._not_found(key)
        return Ok(stored.metadata)

    async def delete(self, key: str) -> Result[None]:
        fault = await self._enter("delete", key)
        if fault is not None:
            return fault

        if key not in self._pinned:
            self._objects.pop(key, None)
        return Ok(None)

    async def list(self, prefix: str, limit: Optional[int] = None) -> Result[List[str]]:
        fault = await self._enter("list", prefix)
        if fault is not None:
            return fault

        matched = [key for key in sorted(self._objects) if key.startswith(prefix)]
        if limit is not None:
            matched = matched[:limit]
        return Ok(matched)


__all__ = ['MemoryStorageAdapter', 'FaultRule']
