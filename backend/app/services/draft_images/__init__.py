"""
草稿图片服务模块
提供草稿图片上传、发布迁移与孤儿清理
"""

from app.services.draft_images.cleanup_service import (
    CleanupReport,
    CleanupSummary,
    OrphanCleanupService,
    compute_orphans,
)
from app.services.draft_images.exceptions import (
    DraftImageError,
    DraftNotFoundError,
    TooManyImagesError,
)
from app.services.draft_images.migration_service import (
    DraftImageMigrationService,
    ImageMigrationOutcome,
    LocationNames,
    MigrationReport,
    MigrationStatus,
)
from app.services.draft_images.upload_handler import (
    DraftImageUploadHandler,
    DraftImageUploadResult,
)

__all__ = [
    'CleanupReport',
    'CleanupSummary',
    'OrphanCleanupService',
    'compute_orphans',
    'DraftImageError',
    'DraftNotFoundError',
    'TooManyImagesError',
    'DraftImageMigrationService',
    'ImageMigrationOutcome',
    'LocationNames',
    'MigrationReport',
    'MigrationStatus',
    'DraftImageUploadHandler',
    'DraftImageUploadResult',
]
