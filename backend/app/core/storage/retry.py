"""
重试策略模块
为可能失败的异步操作提供有界的指数退避重试
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.exceptions import ObjectNotFoundError, RetryExhaustedError

logger = get_logger(__name__)

T = TypeVar('T')

OnRetry = Callable[[BaseException, int], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    重试策略

    第 attempt 次失败（从0开始计数）后等待 min_timeout * factor ** attempt 秒，
    上限为 max_timeout；最多重试 retries 次，总尝试次数为 retries + 1。

    Attributes:
        retries: 最大重试次数
        min_timeout: 首次退避时间（秒）
        factor: 退避倍数
        max_timeout: 单次退避上限（秒）
        giveup_on: 遇到这些异常时立即放弃，不再重试
    """
    retries: int = 3
    min_timeout: float = 0.2
    factor: float = 2.0
    max_timeout: float = 5.0
    giveup_on: Tuple[Type[BaseException], ...] = (ObjectNotFoundError,)

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError("retries 不能为负数")
        if self.min_timeout < 0 or self.max_timeout < 0:
            raise ValueError("退避时间不能为负数")
        if self.factor < 1:
            raise ValueError("factor 不能小于1")

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def backoff(self, attempt: int) -> float:
        """第 attempt 次失败后的等待时间（秒）"""
        return min(self.min_timeout * (self.factor ** attempt), self.max_timeout)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        """从全局配置构建重试策略"""
        return cls(
            retries=settings.storage_retry_count,
            min_timeout=settings.storage_retry_min_timeout,
            factor=settings.storage_retry_factor,
            max_timeout=settings.storage_retry_max_timeout,
        )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    operation_name: str = "storage_operation",
    on_retry: Optional[OnRetry] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    带重试地执行异步操作

    Args:
        operation: 无参异步操作，每次尝试重新调用
        policy: 重试策略
        operation_name: 操作名称，用于日志与最终异常
        on_retry: 每次重试前的回调，参数为 (异常, 已失败次数)
        sleep: 退避等待函数

    Returns:
        operation 的返回值

    Raises:
        RetryExhaustedError: 所有尝试都失败时抛出，__cause__ 为最后一次异常
        policy.giveup_on 中的异常: 原样抛出，不重试
    """
    last_error: Optional[BaseException] = None

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except policy.giveup_on:
            raise
        except Exception as e:
            last_error = e
            if attempt >= policy.retries:
                break

            delay = policy.backoff(attempt)
            logger.warning(
                log_messages.STORAGE_RETRY,
                operation_name=operation_name,
                attempt=attempt + 1,
                max_attempts=policy.max_attempts,
                delay=delay,
                error=str(e)
            )
            if on_retry is not None:
                on_retry(e, attempt + 1)
            await sleep(delay)

    raise RetryExhaustedError(operation_name, policy.max_attempts, last_error) from last_error


__all__ = ['RetryPolicy', 'with_retry']
