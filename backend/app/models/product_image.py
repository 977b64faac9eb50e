"""
商品图片数据模型
记录已发布商品图片的最终对象键与访问路径
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP

from app.db.database import Base


class ProductImage(Base):
    """商品图片模型"""

    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    product_id = Column(Integer, nullable=False, index=True)

    url = Column(Text, nullable=False)
    object_key = Column(Text, nullable=False)
    is_main = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(
        TIMESTAMP,
        default=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ProductImage(id={self.id}, product_id={self.product_id}, object_key={self.object_key})>"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            'id': self.id,
            'product_id': self.product_id,
            'url': self.url,
            'object_key': self.object_key,
            'is_main': self.is_main,
            'sort_order': self.sort_order,
        }
