"""
数据模型模块
"""

from app.models.product_draft import ProductDraft
from app.models.product_image import ProductImage

__all__ = ['ProductDraft', 'ProductImage']
