"""
腾讯云COS存储适配器
实现 ObjectStoreAdapter 接口，把COS SDK调用翻译为 Result
"""

import asyncio
from datetime import datetime
from email.utils import parsedate_to_datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional, TypeVar

from app.core.config.cos_config import COSConfig, get_cos_config, validate_cos_config
from app.core.log_utils import get_logger
from app.core.storage.base_storage import ObjectStoreAdapter
from app.core.storage.exceptions import ConfigurationError
from app.core.storage.models import (
    AdapterError,
    AdapterErrorKind,
    Err,
    ObjectMetadata,
    Ok,
    Result,
    StoredObject,
)

logger = get_logger(__name__)

T = TypeVar('T')


class TencentCosAdapter(ObjectStoreAdapter):
    """
    腾讯云COS存储适配器

    SDK为同步实现，所有调用都在默认线程池中执行。
    适配器不做重试，重试由 ObjectStoreService 统一负责。
    """

    # 适配器名称，用于工厂模式注册
    ADAPTER_NAME: str = "tencent_cos"

    def __init__(self, config: Optional[COSConfig] = None, client: Any = None) -> None:
        """
        初始化COS存储客户端

        Args:
            config: COS配置，默认从全局配置读取
            client: 预先构建的 CosS3Client（测试时注入）

        Raises:
            ConfigurationError: 配置不完整时抛出
        """
        self.config = config or get_cos_config()

        if client is None and not validate_cos_config(self.config):
            raise ConfigurationError("腾讯云COS配置不完整，请检查环境变量")

        self._client = client if client is not None else self._create_client()

    def _create_client(self):
        """
        创建COS客户端

        Returns:
            CosS3Client: COS客户端实例
        """
        from qcloud_cos import CosConfig, CosS3Client

        cos_config = CosConfig(
            Region=self.config.region,
            SecretId=self.config.secret_id,
            SecretKey=self.config.secret_key,
            Scheme=self.config.scheme,
            Timeout=self.config.timeout
        )
        return CosS3Client(cos_config)

    async def _run_in_executor(self, func: Callable[..., T], **kwargs) -> T:
        """
        在线程池中运行同步函数

        Args:
            func: 同步函数
            **kwargs: 函数关键字参数

        Returns:
            函数执行结果
        """
        loop = asyncio.get_running_loop()
        bound_func = partial(func, **kwargs)
        return await loop.run_in_executor(None, bound_func)

    @staticmethod
    def _to_error(exc: Exception, key: str) -> Err:
        """
        把SDK异常映射为适配器错误

        CosServiceError 带HTTP状态码：404 为不存在，403 为权限错误；
        其余服务端错误与 CosClientError（网络、超时）均视为暂时性错误。
        """
        status = None
        get_status_code = getattr(exc, "get_status_code", None)
        if callable(get_status_code):
            status = get_status_code()

        if status == 404:
            kind = AdapterErrorKind.NOT_FOUND
        elif status == 403:
            kind = AdapterErrorKind.PERMISSION
        else:
            kind = AdapterErrorKind.TRANSIENT

        return Err(AdapterError(kind, f"COS请求失败: {key}: {exc}", cause=exc))

    @staticmethod
    def _header(response: Dict[str, Any], *names: str) -> Optional[str]:
        """按候选名称读取响应头，SDK 返回的头部名称大小写不固定"""
        lowered = {str(k).lower(): v for k, v in (response or {}).items()}
        for name in names:
            value = lowered.get(name.lower())
            if value:
                return str(value)
        return None

    def _metadata_from_headers(self, key: str, response: Dict[str, Any], size: Optional[int] = None) -> ObjectMetadata:
        """从响应头构建对象元数据"""
        length = self._header(response, "Content-Length")
        etag = self._header(response, "ETag")
        last_modified: Optional[datetime] = None
        raw_last_modified = self._header(response, "Last-Modified")
        if raw_last_modified:
            try:
                last_modified = parsedate_to_datetime(raw_last_modified)
            except (TypeError, ValueError):
                last_modified = None

        custom = {
            str(k)[len("x-cos-meta-"):]: str(v)
            for k, v in (response or {}).items()
            if str(k).lower().startswith("x-cos-meta-")
        }

        return ObjectMetadata(
            key=key,
            size=size if size is not None else int(length or 0),
            content_type=self._header(response, "Content-Type"),
            cache_control=self._header(response, "Cache-Control"),
            etag=etag.strip('"') if etag else None,
            last_modified=last_modified,
            metadata=custom,
        )

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None
    ) -> Result[None]:
        upload_params = {
            'Bucket': self.config.bucket,
            'Key': key,
            'Body': data,
            'ContentType': content_type
        }
        if cache_control:
            upload_params['CacheControl'] = cache_control

        try:
            await self._run_in_executor(self._client.put_object, **upload_params)
        except Exception as e:
            return self._to_error(e, key)
        return Ok(None)

    async def get(self, key: str) -> Result[StoredObject]:
        try:
            response = await self._run_in_executor(
                self._client.get_object,
                Bucket=self.config.bucket,
                Key=key
            )
            body = response['Body'].get_raw_stream()
            data = await self._run_in_executor(body.read)
        except Exception as e:
            return self._to_error(e, key)

        return Ok(StoredObject(
            data=data,
            metadata=self._metadata_from_headers(key, response, size=len(data))
        ))

    async def head(self, key: str) -> Result[ObjectMetadata]:
        try:
            response = await self._run_in_executor(
                self._client.head_object,
                Bucket=self.config.bucket,
                Key=key
            )
        except Exception as e:
            return self._to_error(e, key)
        return Ok(self._metadata_from_headers(key, response))

    async def delete(self, key: str) -> Result[None]:
        try:
            await self._run_in_executor(
                self._client.delete_object,
                Bucket=self.config.bucket,
                Key=key
            )
        except Exception as e:
            error = self._to_error(e, key)
            # 删除不存在的对象视为成功
            if error.error.is_not_found:
                return Ok(None)
            return error
        return Ok(None)

    async def list(self, prefix: str, limit: Optional[int] = None) -> Result[List[str]]:
        keys: List[str] = []
        marker = ""

        try:
            while True:
                page_size = self.config.list_page_size
                if limit is not None:
                    page_size = min(page_size, limit - len(keys))
                    if page_size <= 0:
                        break

                response = await self._run_in_executor(
                    self._client.list_objects,
                    Bucket=self.config.bucket,
                    Prefix=prefix,
                    Marker=marker,
                    MaxKeys=page_size
                )

                contents = response.get('Contents', [])
                keys.extend(item['Key'] for item in contents)

                if str(response.get('IsTruncated', 'false')).lower() != 'true' or not contents:
                    break
                marker = response.get('NextMarker') or contents[-1]['Key']
        except Exception as e:
            return self._to_error(e, prefix)

        return Ok(keys)


__all__ = ['TencentCosAdapter']
