"""
草稿图片迁移服务
商品发布时把草稿图片从 drafts/{draft_id}/ 迁移到最终位置

单张图片的步骤严格顺序执行：校验源存在 -> 写入目标并校验 -> 删除源。
多张图片之间并发执行，每张图片的结果单独记录。
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.exceptions import MovePhase, StorageMoveError
from app.core.storage.service import ObjectStoreService
from app.services.draft_images.exceptions import DraftNotFoundError
from app.services.draft_images.protocols import (
    DraftRecord,
    DraftRepositoryProtocol,
    ProductImageRepositoryProtocol,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class LocationNames:
    """最终位置使用的名称，缺失项由键构建器填充回退值"""
    supplier: Optional[str] = None
    catalog: Optional[str] = None
    category: Optional[str] = None
    product: Optional[str] = None


class MigrationStatus(str, Enum):
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(frozen=True)
class ImageMigrationOutcome:
    """
    单张图片的迁移结果

    Attributes:
        source_key: 草稿对象键
        status: published / failed
        destination_key: 最终对象键
        url: 最终公开访问路径（仅发布成功时）
        source_deleted: 源对象是否已删除；为 False 时留给孤儿清理
        phase: 失败阶段（仅失败时）
        error: 失败原因（仅失败时）
    """
    source_key: str
    status: MigrationStatus
    destination_key: Optional[str] = None
    url: Optional[str] = None
    source_deleted: bool = False
    phase: Optional[MovePhase] = None
    error: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.status == MigrationStatus.PUBLISHED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_key': self.source_key,
            'status': self.status.value,
            'destination_key': self.destination_key,
            'url': self.url,
            'source_deleted': self.source_deleted,
            'phase': self.phase.value if self.phase else None,
            'error': self.error,
        }


@dataclass
class MigrationReport:
    """批量迁移结果，outcomes 与输入顺序一致"""
    outcomes: List[ImageMigrationOutcome] = field(default_factory=list)

    @property
    def published(self) -> List[ImageMigrationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.published]

    @property
    def failed(self) -> List[ImageMigrationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.published]

    @property
    def all_published(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outcomes': [outcome.to_dict() for outcome in self.outcomes],
            'summary': {
                'total': len(self.outcomes),
                'published': len(self.published),
                'failed': len(self.failed),
            }
        }


class DraftImageMigrationService:
    """草稿图片迁移服务"""

    def __init__(
        self,
        store: ObjectStoreService,
        drafts: Optional[DraftRepositoryProtocol] = None,
        product_images: Optional[ProductImageRepositoryProtocol] = None
    ):
        self.store = store
        self.drafts = drafts
        self.product_images = product_images

    async def publish_image(
        self,
        source_key: str,
        names: LocationNames,
        product_id: Union[str, int]
    ) -> ImageMigrationOutcome:
        """
        迁移单张草稿图片

        Returns:
            发布成功的结果；源对象删除失败时 source_deleted 为 False

        Raises:
            StorageMoveError: 校验、下载或上传阶段失败，此时源对象保持不变
        """
        try:
            uploaded = await self.store.move_to_final_location(
                source_key,
                names.supplier,
                names.catalog,
                names.category,
                names.product,
                product_id,
                require_source_delete=True
            )
        except StorageMoveError as e:
            if not e.publish_happened:
                raise
            return ImageMigrationOutcome(
                source_key=source_key,
                status=MigrationStatus.PUBLISHED,
                destination_key=e.destination_key,
                url=self.store.get_public_url(e.destination_key),
                source_deleted=False
            )

        return ImageMigrationOutcome(
            source_key=source_key,
            status=MigrationStatus.PUBLISHED,
            destination_key=uploaded.object_key,
            url=uploaded.url,
            source_deleted=True
        )

    async def _publish_or_record(
        self,
        source_key: str,
        names: LocationNames,
        product_id: Union[str, int]
    ) -> ImageMigrationOutcome:
        try:
            return await self.publish_image(source_key, names, product_id)
        except StorageMoveError as e:
            return ImageMigrationOutcome(
                source_key=source_key,
                status=MigrationStatus.FAILED,
                destination_key=e.destination_key or None,
                phase=e.phase,
                error=e.message
            )

    async def publish_images(
        self,
        source_keys: Sequence[str],
        names: LocationNames,
        product_id: Union[str, int]
    ) -> MigrationReport:
        """并发迁移多张草稿图片，单张失败不影响其它图片"""
        outcomes = await asyncio.gather(
            *(self._publish_or_record(key, names, product_id) for key in source_keys)
        )
        report = MigrationReport(outcomes=list(outcomes))

        logger.info(
            log_messages.MIGRATION_BATCH_DONE,
            product_id=product_id,
            published=len(report.published),
            failed=len(report.failed)
        )
        return report

    async def publish_draft(
        self,
        draft_id: Any,
        names: LocationNames,
        product_id: int
    ) -> MigrationReport:
        """
        发布草稿的全部图片并写入商品图片记录

        每张发布成功的图片对应一条记录，sort_order 为图片在草稿中的位置，
        位置等于草稿 main_image_index 的图片标记为主图。
        完成后草稿只跟踪迁移失败的图片。

        Raises:
            DraftNotFoundError: 草稿不存在
        """
        if self.drafts is None or self.product_images is None:
            raise RuntimeError("publish_draft 需要草稿与商品图片Repository")

        draft = await self.drafts.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)

        source_keys = list(draft.image_object_keys or [])
        names = LocationNames(
            supplier=names.supplier,
            catalog=names.catalog,
            category=names.category,
            product=names.product or draft.name,
        )
        report = await self.publish_images(source_keys, names, product_id)

        main_index = draft.main_image_index or 0
        for index, outcome in enumerate(report.outcomes):
            if not outcome.published:
                logger.warning(
                    log_messages.MOVE_FAILED,
                    draft_id=draft_id,
                    source_key=outcome.source_key,
                    phase=outcome.phase.value if outcome.phase else None
                )
                continue
            await self.product_images.create_product_image(
                product_id=product_id,
                url=outcome.url,
                object_key=outcome.destination_key,
                is_main=index == main_index,
                sort_order=index
            )

        await self._retire_published(draft, report)
        return report

    async def _retire_published(self, draft: DraftRecord, report: MigrationReport) -> None:
        """
        草稿只保留迁移失败的图片

        已发布图片的草稿键从跟踪集合中移除；源对象删除失败留下的副本
        因此不再被跟踪，可由孤儿清理回收。
        """
        if not report.published:
            return

        source_keys = list(draft.image_object_keys or [])
        source_urls = list(draft.image_urls or [])
        if len(source_urls) != len(source_keys):
            source_urls = [self.store.get_public_url(key) for key in source_keys]

        main_index = draft.main_image_index or 0
        main_key = source_keys[main_index] if main_index < len(source_keys) else None

        remaining = [
            (key, url)
            for key, url, outcome in zip(source_keys, source_urls, report.outcomes)
            if not outcome.published
        ]
        remaining_keys = [key for key, _ in remaining]
        remaining_urls = [url for _, url in remaining]
        new_main_index = remaining_keys.index(main_key) if main_key in remaining_keys else 0

        await self.drafts.update_draft_images(draft.id, remaining_urls, remaining_keys, new_main_index)
        logger.info(
            log_messages.DRAFT_IMAGES_RETIRED,
            draft_id=draft.id,
            retired=len(report.published),
            remaining=len(remaining_keys)
        )


__all__ = [
    'LocationNames',
    'MigrationStatus',
    'ImageMigrationOutcome',
    'MigrationReport',
    'DraftImageMigrationService',
]
