"""
测试工具包
提供统一的测试工具和辅助函数
"""

from .fakes import (
    FakeDraft,
    InMemoryDraftRepository,
    InMemoryProductImageRepository,
    RecordingSleep,
    build_store,
    make_image_bytes,
)
from .mock_utils import FakeCosServiceError, MockBuilder, cos_page

__all__ = [
    'FakeDraft',
    'InMemoryDraftRepository',
    'InMemoryProductImageRepository',
    'RecordingSleep',
    'build_store',
    'make_image_bytes',
    'FakeCosServiceError',
    'MockBuilder',
    'cos_page',
]
