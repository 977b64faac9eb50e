"""
文件工具模块
提供统一的文件名与内容类型处理函数
"""

import mimetypes
from pathlib import PurePosixPath
from typing import Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_MIME_MAP = {
    # 图片
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.avif': 'image/avif',
    # 文档
    '.pdf': 'application/pdf',
    '.txt': 'text/plain',
    '.csv': 'text/csv',
    '.json': 'application/json',
    '.xml': 'application/xml',
    '.zip': 'application/zip',
    '.xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}

_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.svg', '.avif'}


def get_file_extension(filename: str) -> str:
    """
    获取文件扩展名（小写）

    Args:
        filename: 文件名或对象键

    Returns:
        str: 文件扩展名（如：.jpg, .png），没有扩展名时返回空字符串
    """
    return PurePosixPath(filename).suffix.lower()


def is_valid_image_extension(extension: str) -> bool:
    """检查是否为有效的图片文件扩展名"""
    return extension.lower() in _IMAGE_EXTENSIONS


def lookup_mime_type(filename: str) -> Optional[str]:
    """
    根据扩展名查找MIME类型

    先查内置映射表，再回落到标准库 mimetypes；都未命中返回 None。
    """
    extension = get_file_extension(filename)
    if not extension:
        return None
    if extension in _MIME_MAP:
        return _MIME_MAP[extension]
    guessed, _ = mimetypes.guess_type(f"file{extension}")
    return guessed


def get_mime_type(filename: str) -> str:
    """
    根据文件扩展名获取MIME类型

    Args:
        filename: 文件名或对象键

    Returns:
        str: MIME类型，未识别时为 application/octet-stream
    """
    return lookup_mime_type(filename) or DEFAULT_CONTENT_TYPE
