"""
文件访问API端点
通过稳定路径 /{files_prefix}/{object_key} 读取与删除对象
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse, Response

from app.api.deps import get_object_store
from app.core.log_utils import get_logger
from app.core.storage.keys import temp_alias_to_key
from app.core.storage.service import ObjectStoreService
from app.schemas.common import StandardResponse

logger = get_logger(__name__)

router = APIRouter(tags=["文件访问"])

# 临时文件短路径 /temp/{identifier}/{filename}
temp_router = APIRouter(tags=["文件访问"])


@router.get(
    "/{object_key:path}",
    summary="读取对象",
    description="按对象键返回文件内容，内容类型取自存储端元数据或扩展名"
)
async def get_file(
    object_key: str,
    store: ObjectStoreService = Depends(get_object_store)
) -> Response:
    """
    读取对象

    对象不存在返回404，对象键不合法返回400，存储端不可用返回503。
    """
    downloaded = await store.download_as_buffer(object_key)
    return Response(
        content=downloaded.data,
        media_type=downloaded.content_type,
        headers={"Content-Length": str(downloaded.size)}
    )


@router.delete(
    "/{object_key:path}",
    response_model=StandardResponse,
    summary="删除对象",
    description="幂等删除，对象不存在同样返回成功"
)
async def delete_file(
    object_key: str,
    store: ObjectStoreService = Depends(get_object_store)
) -> StandardResponse:
    deleted = await store.delete(object_key)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="删除文件失败"
        )
    return StandardResponse(message="文件已删除", data={"object_key": object_key})


@temp_router.get(
    "/{identifier}/{filename}",
    summary="临时文件短路径",
    description="重定向到临时文件的规范访问路径"
)
async def temp_file_alias(
    identifier: str,
    filename: str,
    store: ObjectStoreService = Depends(get_object_store)
) -> RedirectResponse:
    object_key = temp_alias_to_key(identifier, filename)
    return RedirectResponse(
        url=store.get_public_url(object_key),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
