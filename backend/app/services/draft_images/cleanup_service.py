"""
草稿孤儿图片清理服务
删除存储中存在、但草稿记录未跟踪的草稿图片
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.keys import draft_prefix
from app.core.storage.service import ObjectStoreService
from app.services.draft_images.protocols import DraftRepositoryProtocol

logger = get_logger(__name__)


def compute_orphans(stored: Iterable[str], tracked: Iterable[str]) -> List[str]:
    """
    计算孤儿对象键 S \\ T

    Args:
        stored: 存储端列出的对象键
        tracked: 草稿记录中跟踪的对象键

    Returns:
        List[str]: 未被跟踪的对象键，保持存储端顺序
    """
    tracked_keys = set(tracked)
    return [key for key in stored if key not in tracked_keys]


@dataclass
class CleanupReport:
    """单个草稿的清理结果"""
    draft_id: Any
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'draft_id': self.draft_id, 'deleted': self.deleted, 'failed': self.failed}


@dataclass
class CleanupSummary:
    """全部草稿的清理汇总"""
    total_cleaned: int = 0
    total_failed: int = 0
    drafts_cleaned: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'total_cleaned': self.total_cleaned,
            'total_failed': self.total_failed,
            'drafts_cleaned': self.drafts_cleaned,
        }


class OrphanCleanupService:
    """草稿孤儿图片清理服务"""

    def __init__(self, store: ObjectStoreService, drafts: DraftRepositoryProtocol):
        self.store = store
        self.drafts = drafts

    async def cleanup_draft(self, draft_id: Any) -> CleanupReport:
        """
        清理单个草稿的孤儿图片

        草稿不存在时返回空结果；单个对象删除失败记入 failed，不中断清理。
        """
        report = CleanupReport(draft_id=draft_id)

        draft = await self.drafts.get_draft(draft_id)
        if draft is None:
            logger.warning(log_messages.ORPHAN_CLEANUP_SKIPPED, draft_id=draft_id)
            return report

        listing = await self.store.list_by_prefix(draft_prefix(draft_id))
        orphans = compute_orphans(listing.objects, draft.image_object_keys or [])
        logger.info(
            log_messages.ORPHAN_CLEANUP_START,
            draft_id=draft_id,
            stored=len(listing.objects),
            orphans=len(orphans)
        )
        if not orphans:
            return report

        result = await self.store.delete_many(orphans)
        report.deleted.extend(result.deleted)
        report.failed.extend(result.failed)

        logger.info(
            log_messages.ORPHAN_CLEANUP_SUCCESS,
            draft_id=draft_id,
            deleted=len(report.deleted),
            failed=len(report.failed)
        )
        return report

    async def cleanup_all(self) -> CleanupSummary:
        """清理全部草稿，单个草稿出错不影响其它草稿"""
        summary = CleanupSummary()

        for draft in await self.drafts.list_drafts():
            try:
                report = await self.cleanup_draft(draft.id)
            except Exception as e:
                logger.error(log_messages.ORPHAN_CLEANUP_FAILED, exception=e, draft_id=draft.id)
                continue

            if report.deleted:
                summary.drafts_cleaned += 1
                summary.total_cleaned += len(report.deleted)
            summary.total_failed += len(report.failed)

        logger.info(log_messages.OPERATION_SUCCESS, operation_name="cleanup_all", **summary.to_dict())
        return summary


__all__ = ['compute_orphans', 'CleanupReport', 'CleanupSummary', 'OrphanCleanupService']
