"""
存储服务异常定义
定义存储模块中使用的所有异常类型

写路径（上传、迁移的上传阶段）的异常向调用方传播；
读路径与清理路径（exists、delete、list）的异常在服务内记录日志后吸收。
"""

from enum import Enum
from typing import Any, Dict, Optional


class StorageError(Exception):
    """
    存储操作基础异常

    所有存储相关异常的基类。

    Attributes:
        message: 错误消息
        code: 错误码
        details: 错误详情
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigurationError(StorageError):
    """存储配置错误"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="CONFIG_ERROR", details=details)


class InvalidKeyError(StorageError):
    """对象键不合法（空键、路径穿越、控制字符等）"""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message, code="INVALID_KEY", details={"key": key})
        self.key = key


class StorageUnavailableError(StorageError):
    """对象存储不可达（初始化校验失败）"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="STORAGE_UNAVAILABLE", details=details)


class StorageWriteError(StorageError):
    """上传在重试后仍失败，或写入后存在性校验未通过"""

    def __init__(self, message: str, key: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="WRITE_ERROR", details={"key": key, **(details or {})})
        self.key = key


class InvalidPayloadError(StorageError):
    """上传内容格式不合法（如无法解析的 data URL）"""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_PAYLOAD")


class ReadFailureReason(str, Enum):
    """读取失败原因"""
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class StorageReadError(StorageError):
    """
    下载失败

    reason 区分“确认不存在”（NOT_FOUND）与暂时性故障（UNAVAILABLE），
    HTTP 层据此返回 404 或 5xx。
    """

    def __init__(
        self,
        message: str,
        key: str = "",
        reason: ReadFailureReason = ReadFailureReason.UNAVAILABLE,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, code="READ_ERROR", details={"key": key, **(details or {})})
        self.key = key
        self.reason = reason

    @property
    def is_not_found(self) -> bool:
        return self.reason == ReadFailureReason.NOT_FOUND


class ObjectNotFoundError(StorageReadError):
    """对象确认不存在"""

    def __init__(self, key: str) -> None:
        super().__init__(f"对象不存在: {key}", key=key, reason=ReadFailureReason.NOT_FOUND)
        self.code = "NOT_FOUND"


class MovePhase(str, Enum):
    """迁移失败所处阶段"""
    VALIDATE = "validate"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    DELETE = "delete"


class StorageMoveError(StorageError):
    """
    迁移（下载-上传-删除）组合操作失败

    Attributes:
        phase: 失败阶段
        source_key: 源对象键
        destination_key: 目标对象键
    """

    def __init__(
        self,
        message: str,
        phase: MovePhase,
        source_key: str,
        destination_key: str = ""
    ) -> None:
        super().__init__(
            message,
            code="MOVE_ERROR",
            details={
                "phase": phase.value,
                "source_key": source_key,
                "destination_key": destination_key
            }
        )
        self.phase = phase
        self.source_key = source_key
        self.destination_key = destination_key

    @property
    def publish_happened(self) -> bool:
        """仅删除阶段失败时目标已写入成功"""
        return self.phase == MovePhase.DELETE


class ImageProcessingError(StorageError):
    """图片无法识别或处理失败"""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="IMAGE_ERROR")


class RetryExhaustedError(StorageError):
    """重试次数耗尽"""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"{operation} 在 {attempts} 次尝试后仍然失败: {last_error}",
            code="RETRY_EXHAUSTED",
            details={"operation": operation, "attempts": attempts}
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    'StorageError',
    'ConfigurationError',
    'InvalidKeyError',
    'StorageUnavailableError',
    'StorageWriteError',
    'InvalidPayloadError',
    'ReadFailureReason',
    'StorageReadError',
    'ObjectNotFoundError',
    'MovePhase',
    'StorageMoveError',
    'ImageProcessingError',
    'RetryExhaustedError',
]
