"""
对象存储与草稿图片相关的请求模型
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class LocationNamesMixin(BaseModel):
    """最终位置名称，缺失项使用固定回退片段"""
    supplier_name: Optional[str] = Field(None, description="供应商名称")
    catalog_name: Optional[str] = Field(None, description="目录名称")
    category_name: Optional[str] = Field(None, description="分类名称")
    product_name: Optional[str] = Field(None, description="商品名称")


class PublishDraftImagesRequest(LocationNamesMixin):
    """发布草稿图片请求"""
    product_id: int = Field(..., ge=1, description="已创建的商品ID")


class MoveTempFilesRequest(BaseModel):
    """临时文件迁移到商品目录请求"""
    object_keys: List[str] = Field(..., min_length=1, description="临时对象键列表")


class MoveToFinalLocationRequest(LocationNamesMixin):
    """迁移单张图片到最终位置请求"""
    source_key: str = Field(..., min_length=1, description="源对象键")
    product_id: int = Field(..., ge=1, description="商品ID")
    is_main: bool = Field(False, description="是否设为主图")


__all__ = [
    'LocationNamesMixin',
    'PublishDraftImagesRequest',
    'MoveToFinalLocationRequest',
    'MoveTempFilesRequest',
]
