"""
Repository模块
包含所有数据访问层的Repository类
"""

from .base import BaseRepository
from .product_draft import ProductDraftRepository
from .product_image import ProductImageRepository

__all__ = [
    'BaseRepository',
    'ProductDraftRepository',
    'ProductImageRepository',
]
