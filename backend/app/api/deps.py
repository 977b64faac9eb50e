"""
API依赖模块
为路由提供对象存储服务与Repository实例
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.storage.service import ObjectStoreService
from app.db.database import get_db
from app.repositories.product_draft import ProductDraftRepository
from app.repositories.product_image import ProductImageRepository


def get_object_store(request: Request) -> ObjectStoreService:
    """应用生命周期中创建的对象存储服务"""
    return request.app.state.object_store


def get_draft_repository(db: AsyncSession = Depends(get_db)) -> ProductDraftRepository:
    return ProductDraftRepository(db)


def get_product_image_repository(db: AsyncSession = Depends(get_db)) -> ProductImageRepository:
    return ProductImageRepository(db)
