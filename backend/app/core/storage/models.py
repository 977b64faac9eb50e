"""
存储服务数据模型
定义存储操作中使用的所有数据结构
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


# ==================== 适配器结果类型 ====================

class AdapterErrorKind(str, Enum):
    """适配器错误类别"""
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    PERMISSION = "permission"


@dataclass(frozen=True)
class AdapterError:
    """
    适配器层错误描述

    Attributes:
        kind: 错误类别
        message: 错误消息
        cause: 原始异常（可选）
    """
    kind: AdapterErrorKind
    message: str
    cause: Optional[BaseException] = None

    @property
    def is_not_found(self) -> bool:
        return self.kind == AdapterErrorKind.NOT_FOUND


@dataclass(frozen=True)
class Ok(Generic[T]):
    """成功结果"""
    value: T


@dataclass(frozen=True)
class Err:
    """失败结果"""
    error: AdapterError


# 适配器的所有远程调用都返回 Result，服务层只检查 Ok / Err，不接触SDK返回结构
Result = Union[Ok[T], Err]


# ==================== 对象与元数据 ====================

@dataclass(frozen=True)
class ObjectMetadata:
    """
    对象元数据

    Attributes:
        key: 对象键
        size: 对象大小（字节）
        content_type: 存储端记录的内容类型，未知时为 None
        cache_control: 缓存控制头
        etag: 对象ETag
        last_modified: 最后修改时间
        metadata: 自定义元数据
    """
    key: str
    size: int
    content_type: Optional[str] = None
    cache_control: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredObject:
    """适配器返回的对象内容"""
    data: bytes
    metadata: ObjectMetadata


class ExistenceState(str, Enum):
    """
    对象存在性三态

    UNKNOWN 表示存储端暂时无法判断，exists() 会将其折叠为 False。
    """
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


# ==================== 服务返回结构 ====================

@dataclass(frozen=True)
class UploadResult:
    """
    上传结果

    Attributes:
        url: 稳定的公开访问路径（非签名URL）
        object_key: 对象键
        size: 文件大小（字节）
        content_type: 内容类型
    """
    url: str
    object_key: str
    size: int = 0
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """转换为接口返回格式"""
        return {"url": self.url, "objectKey": self.object_key}


@dataclass(frozen=True)
class DownloadResult:
    """
    下载结果

    Attributes:
        data: 文件数据
        content_type: 内容类型
    """
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ListResult:
    """
    列举结果

    Attributes:
        objects: 对象键列表（存储端顺序）
        prefixes: 非递归模式下的虚拟子目录
    """
    objects: List[str] = field(default_factory=list)
    prefixes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BatchDeleteResult:
    """批量删除结果"""
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


__all__ = [
    'AdapterErrorKind',
    'AdapterError',
    'Ok',
    'Err',
    'Result',
    'ObjectMetadata',
    'StoredObject',
    'ExistenceState',
    'UploadResult',
    'DownloadResult',
    'ListResult',
    'BatchDeleteResult',
]
