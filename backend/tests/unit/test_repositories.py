"""
草稿与商品图片Repository单元测试
使用 mock 数据库会话
"""

import pytest

from app.models.product_draft import ProductDraft
from app.models.product_image import ProductImage
from app.repositories import ProductDraftRepository, ProductImageRepository
from tests.utils import MockBuilder


@pytest.mark.unit
class TestProductDraftRepository:
    """草稿Repository测试"""

    @pytest.mark.asyncio
    async def test_get_draft(self):
        draft = ProductDraft(id=42, name="Red Tee", image_urls=[], image_object_keys=[])
        session = MockBuilder.create_mock_db_session([draft])

        assert await ProductDraftRepository(session).get_draft(42) is draft
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_missing_draft(self):
        session = MockBuilder.create_mock_db_session([])
        assert await ProductDraftRepository(session).get_draft(42) is None

    @pytest.mark.asyncio
    async def test_list_drafts(self):
        drafts = [ProductDraft(id=1), ProductDraft(id=2)]
        session = MockBuilder.create_mock_db_session(drafts)

        assert await ProductDraftRepository(session).list_drafts() == drafts

    @pytest.mark.asyncio
    async def test_update_draft_images(self):
        draft = ProductDraft(id=42, image_urls=[], image_object_keys=[], main_image_index=0)
        session = MockBuilder.create_mock_db_session([draft])

        updated = await ProductDraftRepository(session).update_draft_images(
            42, ["/api/files/drafts/42/a.png"], ["drafts/42/a.png"], 0
        )

        assert updated is draft
        assert draft.image_object_keys == ["drafts/42/a.png"]
        assert draft.image_urls == ["/api/files/drafts/42/a.png"]
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_missing_draft(self):
        session = MockBuilder.create_mock_db_session([])

        assert await ProductDraftRepository(session).update_draft_images(42, [], []) is None
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_rolls_back_on_commit_failure(self):
        session = MockBuilder.create_mock_db_session([ProductDraft(id=42)])
        session.commit.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            await ProductDraftRepository(session).update_draft_images(42, [], [])
        session.rollback.assert_awaited_once()

    def test_to_dict(self):
        draft = ProductDraft(id=42, name="Red Tee", image_urls=["u"], image_object_keys=["k"], main_image_index=0)
        assert draft.to_dict()["image_object_keys"] == ["k"]


@pytest.mark.unit
class TestProductImageRepository:
    """商品图片Repository测试"""

    @pytest.mark.asyncio
    async def test_create_product_image(self):
        session = MockBuilder.create_mock_db_session()

        record = await ProductImageRepository(session).create_product_image(
            product_id=7,
            url="/api/files/acme-co/summer/shirts/red-tee_7/a.png",
            object_key="acme-co/summer/shirts/red-tee_7/a.png",
            is_main=True,
            sort_order=0
        )

        assert isinstance(record, ProductImage)
        assert record.is_main is True
        assert record.object_key == "acme-co/summer/shirts/red-tee_7/a.png"
        session.add.assert_called_once_with(record)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_rolls_back_on_failure(self):
        session = MockBuilder.create_mock_db_session()
        session.commit.side_effect = RuntimeError("constraint violated")

        with pytest.raises(RuntimeError):
            await ProductImageRepository(session).create_product_image(7, "u", "k")
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_product_images(self):
        images = [ProductImage(id=1, product_id=7), ProductImage(id=2, product_id=7)]
        session = MockBuilder.create_mock_db_session(images)

        assert await ProductImageRepository(session).list_product_images(7) == images
