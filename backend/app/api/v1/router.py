"""
API路由聚合模块
将所有v1版本的路由统一注册

路由管理规范：
1. 所有路由文件内部使用相对路径（不以/开头）
2. 所有前缀统一在router.py中管理
3. 文件访问路由不带版本前缀，在 main.py 中按 storage_files_prefix 挂载
"""

from fastapi import APIRouter

from app.api.v1.endpoints import product_drafts, product_images

api_router = APIRouter()

# ==================== 商品草稿图片路由 ====================
api_router.include_router(product_drafts.router, prefix="/product-drafts", tags=["商品草稿图片"])

# ==================== 商品图片路由 ====================
api_router.include_router(product_images.router, prefix="/product-images", tags=["商品图片"])
