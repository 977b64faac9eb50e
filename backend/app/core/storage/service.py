"""
对象存储服务
在适配器之上提供带重试、写后校验与统一错误语义的存储操作

写路径（upload、move 的上传阶段）失败时抛出异常；
读与清理路径（exists、delete、list）失败时记录日志并返回保守结果。
"""

import asyncio
import base64
import binascii
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from app.core.config import settings
from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage import keys
from app.core.storage.base_storage import ObjectStoreAdapter
from app.core.storage.exceptions import (
    InvalidKeyError,
    InvalidPayloadError,
    MovePhase,
    ObjectNotFoundError,
    ReadFailureReason,
    RetryExhaustedError,
    StorageError,
    StorageMoveError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)
from app.core.storage.models import (
    AdapterError,
    BatchDeleteResult,
    DownloadResult,
    Err,
    ExistenceState,
    ListResult,
    ObjectMetadata,
    StoredObject,
    UploadResult,
)
from app.core.storage.retry import RetryPolicy, with_retry
from app.utils.file_utils import DEFAULT_CONTENT_TYPE, lookup_mime_type

logger = get_logger(__name__)

_DATA_URL = re.compile(r"^data:(?P<content_type>[\w.+\-]+/[\w.+\-]+);base64,(?P<data>.+)$", re.DOTALL)


class AdapterCallError(StorageError):
    """单次适配器调用失败，供重试循环捕获"""

    def __init__(self, operation: str, error: AdapterError) -> None:
        super().__init__(error.message, code=error.kind.value.upper(), details={"operation": operation})
        self.operation = operation
        self.error = error


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class ObjectStoreService:
    """
    对象存储服务

    显式构建、依赖注入，不提供模块级单例。同一进程内对同一对象键的写入
    按到达顺序串行执行，最后一次写入生效。

    Example:
        >>> store = ObjectStoreService(MemoryStorageAdapter())
        >>> await store.init()
        >>> result = await store.upload("temp/abc/a.png", data)
    """

    def __init__(
        self,
        adapter: ObjectStoreAdapter,
        *,
        files_prefix: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        default_cache_control: Optional[str] = None,
        temp_cache_control: Optional[str] = None,
        product_cache_control: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> None:
        self.adapter = adapter
        self.files_prefix = files_prefix if files_prefix is not None else settings.storage_files_prefix
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings)
        self.default_cache_control = default_cache_control or settings.storage_default_cache_control
        self.temp_cache_control = temp_cache_control or settings.storage_temp_cache_control
        self.product_cache_control = product_cache_control or settings.storage_product_cache_control
        self._sleep = sleep

        self._ready = False
        self._init_task: Optional[asyncio.Future] = None
        self._key_locks: Dict[str, _KeyLock] = {}

    # ==================== 初始化 ====================

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def init(self) -> None:
        """
        校验对象存储可达

        首次调用时执行一次校验，并发调用方共享同一个进行中的校验；
        校验成功后结果被记住，失败不记住，下一次调用重新校验。

        Raises:
            StorageUnavailableError: 存储不可达时抛出
        """
        if self._ready:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._verify_access())
            self._init_task.add_done_callback(self._on_init_done)
        await asyncio.shield(self._init_task)

    def _on_init_done(self, task: asyncio.Future) -> None:
        if task.cancelled() or task.exception() is not None:
            self._init_task = None
        else:
            self._ready = True

    async def _verify_access(self) -> None:
        logger.info(log_messages.STORAGE_INIT_START, adapter=self.adapter.ADAPTER_NAME)
        result = await self.adapter.ping()
        if isinstance(result, Err):
            logger.error(
                log_messages.STORAGE_INIT_FAILED,
                adapter=self.adapter.ADAPTER_NAME,
                error=result.error.message
            )
            raise StorageUnavailableError(
                f"对象存储不可达: {result.error.message}",
                details={"adapter": self.adapter.ADAPTER_NAME, "kind": result.error.kind.value}
            )
        logger.info(log_messages.STORAGE_INIT_SUCCESS, adapter=self.adapter.ADAPTER_NAME)

    # ==================== 内部工具 ====================

    @asynccontextmanager
    async def _key_lock(self, object_key: str) -> AsyncIterator[None]:
        """同一对象键的写入互斥，锁在无人持有时移除"""
        entry = self._key_locks.get(object_key)
        if entry is None:
            entry = self._key_locks[object_key] = _KeyLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._key_locks.pop(object_key, None)

    async def _retry(self, operation: Callable[[], Awaitable], operation_name: str):
        return await with_retry(
            operation,
            self.retry_policy,
            operation_name=operation_name,
            sleep=self._sleep
        )

    def get_public_url(self, object_key: str) -> str:
        """对象的稳定公开访问路径"""
        return keys.public_url(object_key, self.files_prefix)

    @staticmethod
    def detect_content_type(
        filename: str,
        explicit: Optional[str] = None,
        reported: Optional[str] = None
    ) -> str:
        """
        推断内容类型

        优先级：调用方显式指定 > 存储端记录 > 扩展名映射 > application/octet-stream。
        存储端记录的类型原样返回，只有存储端没有记录时才按扩展名推断。
        """
        if explicit:
            return explicit
        if reported:
            return reported
        return lookup_mime_type(filename) or DEFAULT_CONTENT_TYPE

    # ==================== 写入 ====================

    async def upload(
        self,
        object_key: str,
        data: Union[bytes, bytearray, memoryview],
        *,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None
    ) -> UploadResult:
        """
        上传对象

        写入与存在性校验作为一个整体重试，只有校验通过后才返回。

        Raises:
            InvalidKeyError: 对象键不合法
            StorageWriteError: 重试耗尽后仍未写入成功
        """
        keys.validate_object_key(object_key)
        payload = bytes(data)
        resolved_type = self.detect_content_type(object_key, explicit=content_type)
        resolved_cache = cache_control or self.default_cache_control

        try:
            await self.init()
        except StorageUnavailableError as e:
            raise StorageWriteError(f"对象存储不可达，无法上传: {object_key}", key=object_key) from e

        async def attempt() -> None:
            written = await self.adapter.put(object_key, payload, resolved_type, resolved_cache)
            if isinstance(written, Err):
                raise AdapterCallError("put", written.error)
            check = await self.adapter.head(object_key)
            if isinstance(check, Err):
                raise AdapterCallError("verify", check.error)

        async with self._key_lock(object_key):
            try:
                await self._retry(attempt, f"upload {object_key}")
            except RetryExhaustedError as e:
                logger.error(
                    log_messages.STORAGE_UPLOAD_FAILED,
                    exception=e,
                    object_key=object_key,
                    attempts=e.attempts
                )
                raise StorageWriteError(
                    f"上传失败: {object_key}",
                    key=object_key,
                    details={"attempts": e.attempts}
                ) from e

        logger.info(
            log_messages.STORAGE_UPLOAD_SUCCESS,
            object_key=object_key,
            size=len(payload),
            content_type=resolved_type
        )
        return UploadResult(
            url=self.get_public_url(object_key),
            object_key=object_key,
            size=len(payload),
            content_type=resolved_type
        )

    async def upload_temp_file(
        self,
        data: bytes,
        filename: str,
        identifier: Union[str, int] = "pending",
        content_type: Optional[str] = None
    ) -> UploadResult:
        """上传临时文件到 temp/{identifier}/，文件名追加唯一后缀，不缓存"""
        object_key = keys.build_temp_key(identifier, keys.generate_unique_filename(filename))
        return await self.upload(
            object_key,
            data,
            content_type=self.detect_content_type(filename, explicit=content_type),
            cache_control=self.temp_cache_control
        )

    async def upload_draft_image(
        self,
        data: bytes,
        filename: str,
        draft_id: Union[str, int],
        content_type: Optional[str] = None
    ) -> UploadResult:
        """上传草稿图片到 drafts/{draft_id}/"""
        object_key = keys.build_draft_key(draft_id, keys.generate_unique_filename(filename))
        return await self.upload(
            object_key,
            data,
            content_type=self.detect_content_type(filename, explicit=content_type)
        )

    async def upload_product_image(
        self,
        data: bytes,
        filename: str,
        product_id: Union[str, int],
        content_type: Optional[str] = None
    ) -> UploadResult:
        """上传商品图片到 products/{product_id}/，长期缓存"""
        object_key = keys.build_product_key(product_id, keys.generate_unique_filename(filename))
        return await self.upload(
            object_key,
            data,
            content_type=self.detect_content_type(filename, explicit=content_type),
            cache_control=self.product_cache_control
        )

    async def upload_from_base64(
        self,
        object_key: str,
        data_url: str,
        *,
        cache_control: Optional[str] = None
    ) -> UploadResult:
        """
        上传 data URL（data:{content_type};base64,{data}）中的内容

        内容类型取自 data URL 头部。

        Raises:
            InvalidPayloadError: data URL 格式不合法或 Base64 解码失败
            InvalidKeyError: 对象键不合法
            StorageWriteError: 重试耗尽后仍未写入成功
        """
        match = _DATA_URL.match(data_url or "")
        if match is None:
            logger.warning(log_messages.STORAGE_BASE64_INVALID, object_key=object_key)
            raise InvalidPayloadError("不合法的 Base64 data URL")

        try:
            payload = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(log_messages.STORAGE_BASE64_INVALID, object_key=object_key, error=str(e))
            raise InvalidPayloadError(f"Base64 解码失败: {e}") from e

        return await self.upload(
            object_key,
            payload,
            content_type=match.group("content_type"),
            cache_control=cache_control
        )

    # ==================== 读取 ====================

    async def download_as_buffer(self, object_key: str) -> DownloadResult:
        """
        下载对象内容

        Raises:
            InvalidKeyError: 对象键不合法
            StorageReadError: reason 为 NOT_FOUND（确认不存在）或 UNAVAILABLE（重试耗尽）
        """
        keys.validate_object_key(object_key)

        try:
            await self.init()
        except StorageUnavailableError as e:
            raise StorageReadError(
                f"对象存储不可达: {object_key}",
                key=object_key,
                reason=ReadFailureReason.UNAVAILABLE
            ) from e

        async def attempt() -> StoredObject:
            result = await self.adapter.get(object_key)
            if isinstance(result, Err):
                if result.error.is_not_found:
                    raise ObjectNotFoundError(object_key)
                raise AdapterCallError("get", result.error)
            return result.value

        try:
            stored = await self._retry(attempt, f"download {object_key}")
        except ObjectNotFoundError:
            logger.warning(log_messages.STORAGE_DOWNLOAD_FAILED, object_key=object_key, reason="not_found")
            raise
        except RetryExhaustedError as e:
            logger.error(log_messages.STORAGE_DOWNLOAD_FAILED, exception=e, object_key=object_key)
            raise StorageReadError(
                f"下载失败: {object_key}",
                key=object_key,
                reason=ReadFailureReason.UNAVAILABLE,
                details={"attempts": e.attempts}
            ) from e

        return DownloadResult(
            data=stored.data,
            content_type=self.detect_content_type(object_key, reported=stored.metadata.content_type)
        )

    async def probe(self, object_key: str) -> ExistenceState:
        """
        三态存在性检查

        暂时性错误按重试策略重试，确认不存在时立即返回。

        Returns:
            PRESENT / ABSENT；重试耗尽仍无法判断时返回 UNKNOWN。从不抛出异常。
        """
        try:
            keys.validate_object_key(object_key)
        except InvalidKeyError:
            return ExistenceState.ABSENT

        try:
            await self.init()
        except StorageUnavailableError:
            return ExistenceState.UNKNOWN

        async def attempt() -> ExistenceState:
            result = await self.adapter.head(object_key)
            if not isinstance(result, Err):
                return ExistenceState.PRESENT
            if result.error.is_not_found:
                return ExistenceState.ABSENT
            raise AdapterCallError("head", result.error)

        try:
            return await self._retry(attempt, f"exists {object_key}")
        except RetryExhaustedError as e:
            logger.warning(
                log_messages.STORAGE_EXISTS_FAILED,
                object_key=object_key,
                error=str(e.last_error)
            )
            return ExistenceState.UNKNOWN

    async def exists(self, object_key: str) -> bool:
        """对象是否存在，无法判断时返回 False"""
        return await self.probe(object_key) == ExistenceState.PRESENT

    async def get_metadata(self, object_key: str) -> Optional[ObjectMetadata]:
        """
        获取对象元数据

        Returns:
            ObjectMetadata；对象不存在时返回 None

        Raises:
            InvalidKeyError: 对象键不合法
            StorageReadError: reason 为 UNAVAILABLE（存储不可达或重试耗尽）
        """
        keys.validate_object_key(object_key)

        try:
            await self.init()
        except StorageUnavailableError as e:
            raise StorageReadError(
                f"对象存储不可达: {object_key}",
                key=object_key,
                reason=ReadFailureReason.UNAVAILABLE
            ) from e

        async def attempt() -> Optional[ObjectMetadata]:
            result = await self.adapter.head(object_key)
            if isinstance(result, Err):
                if result.error.is_not_found:
                    return None
                raise AdapterCallError("head", result.error)
            return result.value

        try:
            return await self._retry(attempt, f"metadata {object_key}")
        except RetryExhaustedError as e:
            logger.error(log_messages.STORAGE_METADATA_FAILED, exception=e, object_key=object_key)
            raise StorageReadError(
                f"获取元数据失败: {object_key}",
                key=object_key,
                reason=ReadFailureReason.UNAVAILABLE,
                details={"attempts": e.attempts}
            ) from e

    async def get_size(self, object_key: str) -> Optional[int]:
        """对象大小（字节），对象不存在或无法获取时返回 None"""
        try:
            metadata = await self.get_metadata(object_key)
        except StorageError as e:
            logger.warning(log_messages.STORAGE_METADATA_FAILED, object_key=object_key, error=str(e))
            return None
        return metadata.size if metadata else None

    async def list_by_prefix(self, prefix: str, recursive: bool = True) -> ListResult:
        """
        列举前缀下的对象

        Args:
            prefix: 键前缀，空字符串表示全部
            recursive: False 时只返回直接子对象，子目录放入 prefixes

        Returns:
            ListResult: 存储端顺序的对象键；失败时为空结果
        """
        try:
            keys.validate_prefix(prefix)
            await self.init()
        except (InvalidKeyError, StorageUnavailableError) as e:
            logger.warning(log_messages.STORAGE_LIST_FAILED, prefix=prefix, error=str(e))
            return ListResult()

        async def attempt() -> List[str]:
            result = await self.adapter.list(prefix)
            if isinstance(result, Err):
                raise AdapterCallError("list", result.error)
            return result.value

        try:
            listed = await self._retry(attempt, f"list {prefix}")
        except RetryExhaustedError as e:
            logger.error(log_messages.STORAGE_LIST_FAILED, exception=e, prefix=prefix)
            return ListResult()

        matched = [key for key in listed if key.startswith(prefix)]
        if recursive:
            return ListResult(objects=matched)

        objects: List[str] = []
        prefixes: List[str] = []
        for key in matched:
            head, sep, _ = key[len(prefix):].partition("/")
            if not sep:
                objects.append(key)
            elif f"{prefix}{head}/" not in prefixes:
                prefixes.append(f"{prefix}{head}/")
        return ListResult(objects=objects, prefixes=prefixes)

    # ==================== 删除 ====================

    async def delete(self, object_key: str) -> bool:
        """
        删除对象

        幂等：对象不存在同样视为成功。删除后校验对象已不可见，
        重试耗尽后记录日志并返回 False，不抛出异常。
        """
        try:
            keys.validate_object_key(object_key)
            await self.init()
        except (InvalidKeyError, StorageUnavailableError) as e:
            logger.warning(log_messages.STORAGE_DELETE_FAILED, object_key=object_key, error=str(e))
            return False

        async def attempt() -> None:
            removed = await self.adapter.delete(object_key)
            if isinstance(removed, Err):
                raise AdapterCallError("delete", removed.error)
            check = await self.adapter.head(object_key)
            if not isinstance(check, Err):
                raise StorageError(f"删除后对象仍然存在: {object_key}", code="STILL_PRESENT")
            if not check.error.is_not_found:
                raise AdapterCallError("verify", check.error)

        async with self._key_lock(object_key):
            try:
                await self._retry(attempt, f"delete {object_key}")
            except RetryExhaustedError as e:
                logger.error(log_messages.STORAGE_DELETE_FAILED, exception=e, object_key=object_key)
                return False

        logger.info(log_messages.STORAGE_DELETE_SUCCESS, object_key=object_key)
        return True

    async def delete_many(self, object_keys: Iterable[str]) -> BatchDeleteResult:
        """并发删除多个对象，按输入顺序汇总结果"""
        unique_keys = list(dict.fromkeys(object_keys))
        outcomes = await asyncio.gather(*(self.delete(key) for key in unique_keys))

        result = BatchDeleteResult()
        for key, deleted in zip(unique_keys, outcomes):
            (result.deleted if deleted else result.failed).append(key)
        return result

    # ==================== 迁移 ====================

    async def move_file(
        self,
        source_key: str,
        destination_key: str,
        *,
        cache_control: Optional[str] = None,
        require_source_delete: bool = False
    ) -> UploadResult:
        """
        迁移对象：校验源存在 -> 下载 -> 校验写入目标 -> 删除源

        上传阶段之前的任何失败都不会修改目标，上传失败时源对象保持不变。
        源对象删除失败只留下一个可被孤儿清理回收的副本，默认视为成功；
        require_source_delete 为 True 时抛出 phase=DELETE 的异常。

        Raises:
            StorageMoveError: 带失败阶段
        """
        for key in (source_key, destination_key):
            try:
                keys.validate_object_key(key)
            except InvalidKeyError as e:
                raise StorageMoveError(str(e), MovePhase.VALIDATE, source_key, destination_key) from e
        if source_key == destination_key:
            raise StorageMoveError("源与目标对象键相同", MovePhase.VALIDATE, source_key, destination_key)

        logger.info(log_messages.MOVE_START, source_key=source_key, destination_key=destination_key)

        if await self.probe(source_key) == ExistenceState.ABSENT:
            logger.warning(
                log_messages.MOVE_FAILED,
                source_key=source_key,
                destination_key=destination_key,
                phase=MovePhase.VALIDATE.value
            )
            raise StorageMoveError(
                f"源对象不存在: {source_key}",
                MovePhase.VALIDATE,
                source_key,
                destination_key
            )

        try:
            downloaded = await self.download_as_buffer(source_key)
        except StorageReadError as e:
            phase = MovePhase.VALIDATE if e.is_not_found else MovePhase.DOWNLOAD
            logger.error(
                log_messages.MOVE_FAILED,
                exception=e,
                source_key=source_key,
                destination_key=destination_key,
                phase=phase.value
            )
            raise StorageMoveError(f"读取源对象失败: {source_key}", phase, source_key, destination_key) from e

        try:
            uploaded = await self.upload(
                destination_key,
                downloaded.data,
                content_type=downloaded.content_type,
                cache_control=cache_control
            )
        except StorageError as e:
            logger.error(
                log_messages.MOVE_FAILED,
                exception=e,
                source_key=source_key,
                destination_key=destination_key,
                phase=MovePhase.UPLOAD.value
            )
            raise StorageMoveError(
                f"写入目标对象失败: {destination_key}",
                MovePhase.UPLOAD,
                source_key,
                destination_key
            ) from e

        if not await self.delete(source_key):
            logger.warning(log_messages.MOVE_SOURCE_LEAKED, source_key=source_key, destination_key=destination_key)
            if require_source_delete:
                raise StorageMoveError(
                    f"源对象删除失败: {source_key}",
                    MovePhase.DELETE,
                    source_key,
                    destination_key
                )

        logger.info(log_messages.MOVE_SUCCESS, source_key=source_key, destination_key=destination_key)
        return uploaded

    def final_location_key(
        self,
        source_key: str,
        supplier: Optional[str],
        catalog: Optional[str],
        category: Optional[str],
        product: Optional[str],
        product_id: Union[str, int]
    ) -> str:
        """计算草稿图片发布后的最终对象键，文件名取自源对象键"""
        return keys.build_final_location_key(
            supplier, catalog, category, product, product_id, keys.key_basename(source_key)
        )

    async def move_to_final_location(
        self,
        source_key: str,
        supplier: Optional[str],
        catalog: Optional[str],
        category: Optional[str],
        product: Optional[str],
        product_id: Union[str, int],
        *,
        require_source_delete: bool = False
    ) -> UploadResult:
        """
        把草稿图片迁移到 {supplier}/{catalog}/{category}/{product}_{id}/{filename}

        Raises:
            StorageMoveError: 带失败阶段
        """
        try:
            keys.validate_object_key(source_key)
        except InvalidKeyError as e:
            raise StorageMoveError(str(e), MovePhase.VALIDATE, source_key) from e

        destination_key = self.final_location_key(source_key, supplier, catalog, category, product, product_id)
        return await self.move_file(
            source_key,
            destination_key,
            cache_control=self.product_cache_control,
            require_source_delete=require_source_delete
        )

    async def move_from_temp(self, temp_key: str, product_id: Union[str, int]) -> UploadResult:
        """
        把临时文件迁移到 products/{product_id}/，文件名取自临时对象键

        Raises:
            StorageMoveError: 源键不在 temp/ 下时 phase 为 VALIDATE，其余同 move_file
        """
        if not temp_key.startswith(f"{keys.TEMP_PREFIX}/"):
            raise StorageMoveError(
                f"不是临时文件: {temp_key}", MovePhase.VALIDATE, temp_key
            ) from InvalidKeyError("对象键不在 temp/ 下", temp_key)

        destination_key = keys.build_product_key(product_id, keys.key_basename(temp_key))
        return await self.move_file(temp_key, destination_key, cache_control=self.product_cache_control)


__all__ = ['ObjectStoreService', 'AdapterCallError']
