"""
商品图片数据访问层
"""

from typing import List

from sqlalchemy import select

from app.models.product_image import ProductImage
from .base import BaseRepository


class ProductImageRepository(BaseRepository):
    """商品图片Repository"""

    @property
    def model(self):
        return ProductImage

    async def create_product_image(
        self,
        product_id: int,
        url: str,
        object_key: str,
        is_main: bool = False,
        sort_order: int = 0
    ) -> ProductImage:
        """创建商品图片记录"""
        return await self.create(
            product_id=product_id,
            url=url,
            object_key=object_key,
            is_main=is_main,
            sort_order=sort_order
        )

    async def list_product_images(self, product_id: int) -> List[ProductImage]:
        """按排序获取商品图片"""
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order, ProductImage.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
