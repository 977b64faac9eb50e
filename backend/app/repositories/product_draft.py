"""
商品草稿数据访问层
"""

from typing import List, Optional

from sqlalchemy import select

from app.models.product_draft import ProductDraft
from .base import BaseRepository


class ProductDraftRepository(BaseRepository):
    """商品草稿Repository"""

    @property
    def model(self):
        return ProductDraft

    async def get_draft(self, draft_id: int) -> Optional[ProductDraft]:
        """根据ID获取草稿"""
        return await self.get_by_id(draft_id)

    async def list_drafts(self) -> List[ProductDraft]:
        """获取全部草稿"""
        stmt = select(ProductDraft).order_by(ProductDraft.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_draft_images(
        self,
        draft_id: int,
        image_urls: List[str],
        image_object_keys: List[str],
        main_image_index: Optional[int] = None
    ) -> Optional[ProductDraft]:
        """
        覆盖草稿的图片跟踪字段

        Returns:
            更新后的草稿，草稿不存在时返回 None
        """
        values = {
            'image_urls': list(image_urls),
            'image_object_keys': list(image_object_keys),
        }
        if main_image_index is not None:
            values['main_image_index'] = main_image_index
        return await self.update(draft_id, **values)
