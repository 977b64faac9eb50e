"""
草稿图片服务依赖的持久化接口
Repository 与测试中的内存实现都满足这些协议
"""

from typing import Any, List, Optional, Protocol, Sequence


class DraftRecord(Protocol):
    """草稿记录中图片服务关心的字段"""

    id: Any
    name: Optional[str]
    image_urls: Optional[List[str]]
    image_object_keys: Optional[List[str]]
    main_image_index: Optional[int]


class DraftRepositoryProtocol(Protocol):
    """草稿持久化接口"""

    async def get_draft(self, draft_id: Any) -> Optional[DraftRecord]:
        ...

    async def list_drafts(self) -> Sequence[DraftRecord]:
        ...

    async def update_draft_images(
        self,
        draft_id: Any,
        image_urls: List[str],
        image_object_keys: List[str],
        main_image_index: Optional[int] = None
    ) -> Optional[DraftRecord]:
        ...


class ProductImageRepositoryProtocol(Protocol):
    """商品图片持久化接口"""

    async def create_product_image(
        self,
        product_id: int,
        url: str,
        object_key: str,
        is_main: bool = False,
        sort_order: int = 0
    ) -> Any:
        ...


__all__ = ['DraftRecord', 'DraftRepositoryProtocol', 'ProductImageRepositoryProtocol']
