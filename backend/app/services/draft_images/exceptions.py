"""
草稿图片服务异常定义
"""

from typing import Any


class DraftImageError(Exception):
    """草稿图片服务基础异常"""


class DraftNotFoundError(DraftImageError):
    """草稿不存在"""

    def __init__(self, draft_id: Any) -> None:
        super().__init__(f"草稿不存在: {draft_id}")
        self.draft_id = draft_id


class TooManyImagesError(DraftImageError):
    """单次上传的图片数量超过上限"""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"单次最多上传 {limit} 张图片，实际 {count} 张")
        self.count = count
        self.limit = limit


__all__ = ['DraftImageError', 'DraftNotFoundError', 'TooManyImagesError']
