"""
商品草稿图片API端点
草稿图片上传、发布迁移与孤儿清理
采用薄路由、重服务的架构设计
"""

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.api.deps import get_draft_repository, get_object_store, get_product_image_repository
from app.core.log_utils import get_logger
from app.core.storage.service import ObjectStoreService
from app.repositories.product_draft import ProductDraftRepository
from app.repositories.product_image import ProductImageRepository
from app.schemas.common import StandardResponse
from app.schemas.storage import PublishDraftImagesRequest
from app.services.draft_images import (
    DraftImageMigrationService,
    DraftImageUploadHandler,
    DraftNotFoundError,
    LocationNames,
    OrphanCleanupService,
    TooManyImagesError,
)

logger = get_logger(__name__)

router = APIRouter(tags=["商品草稿图片"])


@router.post(
    "/cleanup-orphans",
    response_model=StandardResponse,
    summary="清理全部草稿的孤儿图片",
    description="删除所有草稿目录下未被草稿记录跟踪的图片"
)
async def cleanup_all_orphans(
    store: ObjectStoreService = Depends(get_object_store),
    drafts: ProductDraftRepository = Depends(get_draft_repository)
) -> StandardResponse:
    summary = await OrphanCleanupService(store, drafts).cleanup_all()
    return StandardResponse(message="孤儿图片清理完成", data=summary.to_dict())


@router.post(
    "/{draft_id}/images",
    response_model=StandardResponse,
    summary="上传草稿图片",
    description="批量上传草稿图片，压缩后存入 drafts/{draft_id}/ 并追加到草稿"
)
async def upload_draft_images(
    draft_id: int,
    files: List[UploadFile] = File(..., description="图片文件"),
    store: ObjectStoreService = Depends(get_object_store),
    drafts: ProductDraftRepository = Depends(get_draft_repository)
) -> StandardResponse:
    incoming = [(file.filename or "file", await file.read(), file.content_type) for file in files]

    handler = DraftImageUploadHandler(store, drafts)
    try:
        result = await handler.handle_batch_upload(draft_id, incoming)
    except DraftNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except TooManyImagesError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return StandardResponse(
        status="success" if not result.failed else "partial",
        message=f"成功上传{len(result.uploaded)}张图片",
        data=result.to_dict()
    )


@router.post(
    "/{draft_id}/publish-images",
    response_model=StandardResponse,
    summary="发布草稿图片",
    description="把草稿图片迁移到商品最终位置并创建商品图片记录"
)
async def publish_draft_images(
    draft_id: int,
    request: PublishDraftImagesRequest,
    store: ObjectStoreService = Depends(get_object_store),
    drafts: ProductDraftRepository = Depends(get_draft_repository),
    product_images: ProductImageRepository = Depends(get_product_image_repository)
) -> StandardResponse:
    names = LocationNames(
        supplier=request.supplier_name,
        catalog=request.catalog_name,
        category=request.category_name,
        product=request.product_name,
    )

    service = DraftImageMigrationService(store, drafts, product_images)
    try:
        report = await service.publish_draft(draft_id, names, request.product_id)
    except DraftNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return StandardResponse(
        status="success" if report.all_published else "partial",
        message=f"成功发布{len(report.published)}张图片",
        data=report.to_dict()
    )


@router.post(
    "/{draft_id}/cleanup-orphans",
    response_model=StandardResponse,
    summary="清理草稿孤儿图片",
    description="删除草稿目录下未被草稿记录跟踪的图片"
)
async def cleanup_draft_orphans(
    draft_id: int,
    store: ObjectStoreService = Depends(get_object_store),
    drafts: ProductDraftRepository = Depends(get_draft_repository)
) -> StandardResponse:
    report = await OrphanCleanupService(store, drafts).cleanup_draft(draft_id)
    return StandardResponse(message="孤儿图片清理完成", data=report.to_dict())
