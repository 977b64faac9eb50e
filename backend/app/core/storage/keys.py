"""
对象键构建模块
由逻辑标识（草稿ID、商品ID、供应商/目录/分类名称）生成规范的对象键

对象存储没有真正的目录，键本身就是唯一的层级机制：
    temp/{identifier}/{filename}                      临时上传
    drafts/{draft_id}/{filename}                      商品发布前的草稿图片
    products/{product_id}/{filename}                  直接上传的商品图片
    {supplier}/{catalog}/{category}/{product}_{id}/   发布后的最终位置

所有片段都经过 sanitize_segment 处理，键永远不会直接由用户输入拼接。
本模块只包含纯函数，不做任何 I/O。
"""

import re
from typing import Optional, Union
from urllib.parse import quote

from app.core.storage.exceptions import InvalidKeyError
from app.utils.id_utils import generate_random_token, get_timestamp_ms

# 命名空间前缀
TEMP_PREFIX = "temp"
DRAFTS_PREFIX = "drafts"
PRODUCTS_PREFIX = "products"

# 片段回退值
DEFAULT_SEGMENT = "default"
DEFAULT_FILENAME = "file"
UNKNOWN_SUPPLIER = "unknown-supplier"
UNKNOWN_CATALOG = "unknown-catalog"
UNKNOWN_CATEGORY = "uncategorized"
UNKNOWN_PRODUCT = "product"

MAX_KEY_LENGTH = 1024

_UNSAFE_CHARS = re.compile(r"[^a-z0-9\-_.]")
_REPEATED_HYPHENS = re.compile(r"-{2,}")
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_segment(value: Optional[Union[str, int]], fallback: str = DEFAULT_SEGMENT) -> str:
    """
    规范化单个键片段

    规则：转小写；[a-z0-9-_.] 之外的字符替换为连字符；连续连字符合并；
    去除首尾连字符；结果为空（或只剩点号）时使用回退值。
    对任意输入 s，sanitize_segment(sanitize_segment(s)) == sanitize_segment(s)。

    Args:
        value: 原始片段
        fallback: 结果为空时的回退值

    Returns:
        str: 规范化后的片段

    Example:
        >>> sanitize_segment("Acme Co")
        'acme-co'
        >>> sanitize_segment("  ")
        'default'
    """
    text = "" if value is None else str(value)
    text = _UNSAFE_CHARS.sub("-", text.lower())
    text = _REPEATED_HYPHENS.sub("-", text).strip("-")
    # "." 与 ".." 作为路径片段没有意义
    if not text.strip("."):
        return fallback
    return text


def split_extension(filename: str):
    """拆分文件名为 (基础名, 扩展名)，扩展名包含点号"""
    base, dot, ext = filename.rpartition(".")
    if not dot or not base:
        return filename, ""
    return base, f".{ext}"


def sanitize_filename(filename: Optional[str]) -> str:
    """
    规范化文件名

    只规范化基础名，扩展名原样保留；不安全的扩展名（含特殊字符或过长）被丢弃。
    路径部分（/ 或 \\ 之前的内容）一律去掉。

    Args:
        filename: 原始文件名

    Returns:
        str: 规范化后的文件名
    """
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    base, ext = split_extension(name)
    if ext and not _SAFE_EXTENSION.match(ext):
        base, ext = name, ""
    return f"{sanitize_segment(base, fallback=DEFAULT_FILENAME)}{ext}"


def generate_unique_filename(filename: Optional[str]) -> str:
    """
    生成带唯一后缀的文件名

    格式为 {基础名}-{毫秒时间戳}-{6位随机串}{扩展名}，避免同名文件多次上传时相互覆盖。
    """
    base, ext = split_extension(sanitize_filename(filename))
    return f"{base}-{get_timestamp_ms()}-{generate_random_token(6)}{ext}"


def build_temp_key(identifier: Union[str, int], filename: str) -> str:
    """构建临时文件键 temp/{identifier}/{filename}"""
    return f"{TEMP_PREFIX}/{sanitize_segment(identifier, fallback='pending')}/{sanitize_filename(filename)}"


def draft_prefix(draft_id: Union[str, int]) -> str:
    """草稿图片前缀 drafts/{draft_id}/"""
    return f"{DRAFTS_PREFIX}/{sanitize_segment(draft_id)}/"


def build_draft_key(draft_id: Union[str, int], filename: str) -> str:
    """构建草稿图片键 drafts/{draft_id}/{filename}"""
    return f"{draft_prefix(draft_id)}{sanitize_filename(filename)}"


def build_product_key(product_id: Union[str, int], filename: str) -> str:
    """构建商品图片键 products/{product_id}/{filename}"""
    return f"{PRODUCTS_PREFIX}/{sanitize_segment(product_id)}/{sanitize_filename(filename)}"


def build_final_location_key(
    supplier: Optional[str],
    catalog: Optional[str],
    category: Optional[str],
    product: Optional[str],
    product_id: Union[str, int],
    filename: str
) -> str:
    """
    构建发布后的最终对象键

    格式：{supplier}/{catalog}/{category}/{product}_{product_id}/{filename}
    名称缺失时使用固定回退片段，保证迁移不会因元数据缺失而中断。

    Example:
        >>> build_final_location_key("Acme Co", "Summer", "Shirts", "Red Tee", 7, "shirt.png")
        'acme-co/summer/shirts/red-tee_7/shirt.png'
    """
    segments = [
        sanitize_segment(supplier, fallback=UNKNOWN_SUPPLIER),
        sanitize_segment(catalog, fallback=UNKNOWN_CATALOG),
        sanitize_segment(category, fallback=UNKNOWN_CATEGORY),
        f"{sanitize_segment(product, fallback=UNKNOWN_PRODUCT)}_{sanitize_segment(product_id)}",
        sanitize_filename(filename),
    ]
    return "/".join(segments)


def key_basename(object_key: str) -> str:
    """对象键的最后一段"""
    return object_key.rstrip("/").rsplit("/", 1)[-1]


def validate_object_key(object_key: str) -> str:
    """
    校验对象键

    拒绝空键、以 / 开头或结尾、空片段、. 与 .. 片段、反斜杠、控制字符以及超长键。

    Returns:
        str: 原样返回合法的键

    Raises:
        InvalidKeyError: 键不合法时抛出
    """
    if not object_key:
        raise InvalidKeyError("对象键不能为空", object_key or "")
    if len(object_key) > MAX_KEY_LENGTH:
        raise InvalidKeyError(f"对象键长度超过 {MAX_KEY_LENGTH}", object_key)
    if object_key.startswith("/") or object_key.endswith("/"):
        raise InvalidKeyError("对象键不能以 / 开头或结尾", object_key)
    if "\\" in object_key or _CONTROL_CHARS.search(object_key):
        raise InvalidKeyError("对象键包含非法字符", object_key)
    for segment in object_key.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidKeyError("对象键包含非法路径片段", object_key)
    return object_key


def validate_prefix(prefix: str) -> str:
    """校验列举前缀，空前缀表示全部对象；非空前缀除末尾外遵循对象键规则"""
    if prefix:
        validate_object_key(prefix.rstrip("/") or "/")
    return prefix


def public_url(object_key: str, files_prefix: str) -> str:
    """
    生成对象的公开访问路径

    固定映射 /{files_prefix}/{object_key}，不是签名URL，不会过期。
    """
    prefix = files_prefix.strip("/")
    return f"/{prefix}/{quote(object_key, safe='/')}" if prefix else f"/{quote(object_key, safe='/')}"


def temp_alias_to_key(identifier: str, filename: str) -> str:
    """把短路径 /temp/{identifier}/{filename} 解析为规范对象键"""
    return validate_object_key(f"{TEMP_PREFIX}/{identifier}/{filename}")


__all__ = [
    'TEMP_PREFIX',
    'DRAFTS_PREFIX',
    'PRODUCTS_PREFIX',
    'DEFAULT_SEGMENT',
    'UNKNOWN_SUPPLIER',
    'UNKNOWN_CATALOG',
    'UNKNOWN_CATEGORY',
    'UNKNOWN_PRODUCT',
    'sanitize_segment',
    'sanitize_filename',
    'split_extension',
    'generate_unique_filename',
    'build_temp_key',
    'draft_prefix',
    'build_draft_key',
    'build_product_key',
    'build_final_location_key',
    'key_basename',
    'validate_object_key',
    'validate_prefix',
    'public_url',
    'temp_alias_to_key',
]
