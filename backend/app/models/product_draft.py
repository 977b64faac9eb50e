"""
商品草稿数据模型
只包含对象存储相关的图片跟踪字段，商品其余属性由业务模块维护
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP

from app.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProductDraft(Base):
    """商品草稿模型"""

    __tablename__ = "product_drafts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=True)

    # 图片跟踪字段，两个数组按下标一一对应
    image_urls = Column(ARRAY(Text), nullable=False, default=list)
    image_object_keys = Column(ARRAY(Text), nullable=False, default=list)
    main_image_index = Column(Integer, nullable=False, default=0)

    created_at = Column(TIMESTAMP, default=_utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ProductDraft(id={self.id}, images={len(self.image_object_keys or [])})>"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            'id': self.id,
            'name': self.name,
            'image_urls': list(self.image_urls or []),
            'image_object_keys': list(self.image_object_keys or []),
            'main_image_index': self.main_image_index or 0,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
