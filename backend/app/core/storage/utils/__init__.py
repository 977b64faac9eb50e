"""
存储工具模块
提供存储相关的工具函数
"""

from app.core.storage.utils.image import content_type_for_format, process_image

__all__ = ['process_image', 'content_type_for_format']
