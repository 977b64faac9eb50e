"""
商品图片API端点
把已上传的图片迁移到商品最终位置并登记为商品图片
"""

import asyncio

from fastapi import APIRouter, Depends, Path

from app.api.deps import get_object_store, get_product_image_repository
from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.service import ObjectStoreService
from app.repositories.product_image import ProductImageRepository
from app.schemas.common import StandardResponse
from app.schemas.storage import MoveTempFilesRequest, MoveToFinalLocationRequest

logger = get_logger(__name__)

router = APIRouter(tags=["商品图片"])


@router.post(
    "/move",
    response_model=StandardResponse,
    summary="迁移图片到最终位置",
    description="把临时或草稿图片迁移到 {supplier}/{catalog}/{category}/{product}_{id}/ 并创建商品图片记录"
)
async def move_to_final_location(
    request: MoveToFinalLocationRequest,
    store: ObjectStoreService = Depends(get_object_store),
    product_images: ProductImageRepository = Depends(get_product_image_repository)
) -> StandardResponse:
    """
    迁移单张图片

    迁移失败由全局异常处理器转换：源对象不存在返回404，写入失败返回500。
    商品图片记录创建失败不影响迁移结果，只记录日志。
    """
    result = await store.move_to_final_location(
        request.source_key,
        request.supplier_name,
        request.catalog_name,
        request.category_name,
        request.product_name,
        request.product_id
    )

    try:
        existing = await product_images.list_product_images(request.product_id)
        await product_images.create_product_image(
            product_id=request.product_id,
            url=result.url,
            object_key=result.object_key,
            is_main=request.is_main or not existing,
            sort_order=len(existing)
        )
    except Exception as e:
        logger.error(log_messages.PRODUCT_IMAGE_RECORD_FAILED, exception=e, object_key=result.object_key)

    return StandardResponse(message="图片迁移成功", data=result.to_dict())


@router.post(
    "/move-temp-files/{product_id}",
    response_model=StandardResponse,
    summary="迁移临时文件到商品目录",
    description="把 temp/ 下的文件迁移到 products/{product_id}/"
)
async def move_temp_files(
    request: MoveTempFilesRequest,
    product_id: int = Path(..., ge=1, description="商品ID"),
    store: ObjectStoreService = Depends(get_object_store)
) -> StandardResponse:
    """任一文件迁移失败时整个请求失败，已迁移的文件保持在新位置"""
    results = await asyncio.gather(
        *(store.move_from_temp(object_key, product_id) for object_key in request.object_keys)
    )
    moved_files = [
        {'original_key': object_key, 'new_key': result.object_key, 'url': result.url}
        for object_key, result in zip(request.object_keys, results)
    ]
    return StandardResponse(message="临时文件迁移成功", data={'moved_files': moved_files})
