"""
图片处理工具
上传前对图片做方向校正、缩放与重新编码
"""

import io
import os
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.log_messages import log_messages
from app.core.log_utils import get_logger
from app.core.storage.exceptions import ImageProcessingError

logger = get_logger(__name__)

SUPPORTED_FITS = ("inside", "cover", "contain", "fill")

# Pillow 格式名 -> MIME 类型
FORMAT_CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

# Pillow 格式名 -> 可接受的扩展名，第一个为规范扩展名
FORMAT_EXTENSIONS = {
    "JPEG": (".jpg", ".jpeg"),
    "PNG": (".png",),
    "WEBP": (".webp",),
    "GIF": (".gif",),
}

_FORMAT_ALIASES = {"JPG": "JPEG"}


def normalize_format(image_format: Optional[str]) -> Optional[str]:
    """把 jpg/jpeg/png/webp 等写法统一成 Pillow 格式名"""
    if not image_format:
        return None
    upper = image_format.upper()
    return _FORMAT_ALIASES.get(upper, upper)


def content_type_for_format(image_format: Optional[str]) -> Optional[str]:
    """Pillow 格式名对应的 MIME 类型，未知格式返回 None"""
    return FORMAT_CONTENT_TYPES.get(normalize_format(image_format) or "")


def detect_format(data: bytes) -> Optional[str]:
    """读取图片头部识别 Pillow 格式名，无法识别时返回 None"""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.format
    except (UnidentifiedImageError, OSError):
        return None


def align_extension(filename: str, image_format: Optional[str]) -> str:
    """把文件扩展名改成与图片格式一致，格式未知时原样返回"""
    extensions = FORMAT_EXTENSIONS.get(normalize_format(image_format) or "")
    if not extensions:
        return filename
    base, ext = os.path.splitext(filename)
    if ext.lower() in extensions:
        return filename
    return f"{base}{extensions[0]}"


def _target_size(
    size: Tuple[int, int],
    width: Optional[int],
    height: Optional[int],
    without_enlargement: bool
) -> Tuple[int, int]:
    """按 inside 语义计算保持宽高比的目标尺寸"""
    src_w, src_h = size
    scales = []
    if width:
        scales.append(width / src_w)
    if height:
        scales.append(height / src_h)
    scale = min(scales) if scales else 1.0
    if without_enlargement:
        scale = min(scale, 1.0)
    return max(1, round(src_w * scale)), max(1, round(src_h * scale))


def process_image(
    data: bytes,
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = 85,
    format: Optional[str] = None,
    fit: str = "inside",
    without_enlargement: bool = True,
    auto_rotate: bool = True,
    background: Tuple[int, int, int] = (255, 255, 255)
) -> bytes:
    """
    处理图片

    Args:
        data: 原始图片数据
        width: 目标宽度（可选）
        height: 目标高度（可选）
        quality: JPEG/WEBP 编码质量
        format: 输出格式（jpeg/png/webp），默认沿用输入格式
        fit: inside（等比缩放至框内）/ cover（裁剪填满）/ contain（等比缩放并补边）/ fill（拉伸）
        without_enlargement: inside 模式下不放大小图
        auto_rotate: 按 EXIF 方向信息旋转
        background: contain 补边及去除透明通道时使用的背景色

    Returns:
        bytes: 处理后的图片数据

    Raises:
        ImageProcessingError: 数据不是可识别的图片或参数不合法
    """
    if fit not in SUPPORTED_FITS:
        raise ImageProcessingError(f"不支持的缩放模式: {fit}")

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageProcessingError(f"无法识别的图片数据: {e}") from e

    output_format = normalize_format(format) or image.format or "PNG"

    try:
        if auto_rotate:
            image = ImageOps.exif_transpose(image)

        if width or height:
            target = (width or image.width, height or image.height)
            if fit == "inside":
                image = image.resize(
                    _target_size(image.size, width, height, without_enlargement),
                    Image.Resampling.LANCZOS
                )
            elif fit == "cover":
                image = ImageOps.fit(image, target, Image.Resampling.LANCZOS)
            elif fit == "contain":
                image = ImageOps.pad(image.convert("RGB"), target, Image.Resampling.LANCZOS, color=background)
            else:
                image = image.resize(target, Image.Resampling.LANCZOS)

        if output_format == "JPEG" and image.mode != "RGB":
            # JPEG 不支持透明通道
            flattened = Image.new("RGB", image.size, background)
            rgba = image.convert("RGBA")
            flattened.paste(rgba, mask=rgba.split()[-1])
            image = flattened

        buffer = io.BytesIO()
        save_options = {}
        if output_format in ("JPEG", "WEBP"):
            save_options["quality"] = quality
        image.save(buffer, format=output_format, **save_options)
    except (OSError, ValueError, KeyError) as e:
        logger.error(log_messages.IMAGE_PROCESS_FAILED, exception=e, output_format=output_format)
        raise ImageProcessingError(f"图片处理失败: {e}") from e

    return buffer.getvalue()


__all__ = [
    'SUPPORTED_FITS',
    'process_image',
    'normalize_format',
    'content_type_for_format',
    'detect_format',
    'align_extension',
]
