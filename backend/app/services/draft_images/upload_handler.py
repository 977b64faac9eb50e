"""
草稿图片上传处理器
批量处理草稿图片：压缩、上传到 drafts/{draft_id}/ 并更新草稿的图片跟踪字段
"""

import asyncio
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.exceptions import ImageProcessingError, StorageError
from app.core.storage.service import ObjectStoreService
from app.core.storage.utils.image import (
    align_extension,
    content_type_for_format,
    detect_format,
    process_image,
)
from app.services.draft_images.exceptions import DraftNotFoundError, TooManyImagesError
from app.services.draft_images.protocols import DraftRecord, DraftRepositoryProtocol

logger = get_logger(__name__)

# (文件名, 文件内容, 客户端声明的内容类型)
IncomingFile = Tuple[str, bytes, Optional[str]]


@dataclass
class DraftImageUploadResult:
    """批量上传结果"""
    draft_id: Any
    uploaded: List[Dict[str, str]] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)
    draft: Optional[DraftRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'draft_id': self.draft_id,
            'uploaded': self.uploaded,
            'failed': self.failed,
            'summary': {
                'total': len(self.uploaded) + len(self.failed),
                'successful': len(self.uploaded),
                'failed': len(self.failed),
            }
        }


class DraftImageUploadHandler:
    """草稿图片上传处理器"""

    def __init__(self, store: ObjectStoreService, drafts: DraftRepositoryProtocol):
        self.store = store
        self.drafts = drafts

    async def _process(self, data: bytes) -> bytes:
        """在线程池中压缩图片"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(
                process_image,
                data,
                width=settings.draft_image_max_width,
                height=settings.draft_image_max_height,
                quality=settings.draft_image_quality,
                fit=settings.draft_image_fit
            )
        )

    async def _upload_one(self, draft_id: Any, incoming: IncomingFile) -> Dict[str, str]:
        filename, data, content_type = incoming

        if not data:
            raise ImageProcessingError("文件内容为空")
        if len(data) > settings.max_image_size:
            raise ImageProcessingError(f"图片大小超过限制 {settings.max_image_size} 字节")

        processed = await self._process(data)

        # 内容类型与扩展名以处理后的实际格式为准，客户端声明只在格式未知时使用
        image_format = detect_format(processed)
        declared_type = content_type if content_type and content_type.startswith("image/") else None
        stored_type = content_type_for_format(image_format) or declared_type
        stored_name = align_extension(filename, image_format)

        result = await self.store.upload_draft_image(processed, stored_name, draft_id, content_type=stored_type)
        return {'original_filename': filename, 'url': result.url, 'object_key': result.object_key}

    async def _upload_or_record(self, draft_id: Any, incoming: IncomingFile) -> Tuple[bool, Dict[str, str]]:
        filename = incoming[0]
        try:
            return True, await self._upload_one(draft_id, incoming)
        except StorageError as e:
            logger.warning(
                log_messages.FILE_UPLOAD_FAILED,
                draft_id=draft_id,
                original_filename=filename,
                error=str(e)
            )
            return False, {'original_filename': filename, 'error': e.message}

    async def handle_batch_upload(self, draft_id: Any, files: Sequence[IncomingFile]) -> DraftImageUploadResult:
        """
        处理草稿图片批量上传

        文件并发处理，单个文件失败只记录在结果中；上传成功的图片按输入顺序
        追加到草稿的 image_urls 与 image_object_keys。

        Raises:
            DraftNotFoundError: 草稿不存在
            TooManyImagesError: 文件数量超过单次上限
        """
        limit = settings.max_draft_images_per_request
        if len(files) > limit:
            raise TooManyImagesError(len(files), limit)

        draft = await self.drafts.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)

        logger.info(log_messages.FILE_UPLOAD_START, draft_id=draft_id, file_count=len(files))

        outcomes = await asyncio.gather(*(self._upload_or_record(draft_id, item) for item in files))

        result = DraftImageUploadResult(draft_id=draft_id, draft=draft)
        for succeeded, payload in outcomes:
            (result.uploaded if succeeded else result.failed).append(payload)

        if result.uploaded:
            image_urls = list(draft.image_urls or []) + [item['url'] for item in result.uploaded]
            image_object_keys = list(draft.image_object_keys or []) + [item['object_key'] for item in result.uploaded]
            result.draft = await self.drafts.update_draft_images(
                draft_id,
                image_urls,
                image_object_keys,
                draft.main_image_index or 0
            )

        logger.info(
            log_messages.FILE_UPLOAD_SUCCESS,
            draft_id=draft_id,
            successful=len(result.uploaded),
            failed=len(result.failed)
        )
        return result


__all__ = ['IncomingFile', 'DraftImageUploadResult', 'DraftImageUploadHandler']
