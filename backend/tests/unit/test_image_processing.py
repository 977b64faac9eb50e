"""
图片处理工具单元测试
"""

import io

import pytest
from PIL import Image

from app.core.storage.exceptions import ImageProcessingError
from app.core.storage.utils.image import (
    align_extension,
    content_type_for_format,
    detect_format,
    normalize_format,
    process_image,
)
from tests.utils import make_image_bytes


def open_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


@pytest.mark.unit
@pytest.mark.storage
class TestProcessImage:
    """process_image 测试"""

    def test_inside_keeps_aspect_ratio(self):
        result = open_image(process_image(make_image_bytes(2000, 1000), width=1200, height=1200))
        assert result.size == (1200, 600)
        assert result.format == "PNG"

    def test_small_image_not_enlarged(self):
        result = open_image(process_image(make_image_bytes(64, 32), width=1200, height=1200))
        assert result.size == (64, 32)

    def test_enlargement_when_allowed(self):
        result = open_image(process_image(make_image_bytes(64, 32), width=128, without_enlargement=False))
        assert result.size == (128, 64)

    @pytest.mark.parametrize("fit", ["cover", "contain", "fill"])
    def test_exact_size_fits(self, fit):
        result = open_image(process_image(make_image_bytes(300, 100), width=100, height=100, fit=fit))
        assert result.size == (100, 100)

    def test_format_conversion(self):
        result = open_image(process_image(make_image_bytes(), format="webp"))
        assert result.format == "WEBP"

    def test_jpeg_output_drops_alpha(self):
        buffer = io.BytesIO()
        Image.new("RGBA", (10, 10), (255, 0, 0, 0)).save(buffer, format="PNG")

        result = open_image(process_image(buffer.getvalue(), format="jpg"))

        assert result.format == "JPEG"
        assert result.mode == "RGB"
        # 完全透明的像素落在白色背景上
        assert all(channel > 240 for channel in result.getpixel((5, 5)))

    def test_exif_orientation_applied(self):
        exif = Image.Exif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        Image.new("RGB", (40, 20), (0, 0, 255)).save(buffer, format="JPEG", exif=exif)

        assert open_image(process_image(buffer.getvalue())).size == (20, 40)
        assert open_image(process_image(buffer.getvalue(), auto_rotate=False)).size == (40, 20)

    @pytest.mark.parametrize("data", [b"", b"not an image"])
    def test_invalid_data(self, data):
        with pytest.raises(ImageProcessingError):
            process_image(data)

    def test_unsupported_fit(self):
        with pytest.raises(ImageProcessingError):
            process_image(make_image_bytes(), width=10, fit="stretch")


@pytest.mark.unit
@pytest.mark.storage
class TestFormatHelpers:
    """格式工具测试"""

    @pytest.mark.parametrize("value,expected", [
        ("jpg", "JPEG"),
        ("JPEG", "JPEG"),
        ("png", "PNG"),
        (None, None),
        ("", None),
    ])
    def test_normalize_format(self, value, expected):
        assert normalize_format(value) == expected

    def test_content_type_for_format(self):
        assert content_type_for_format("jpg") == "image/jpeg"
        assert content_type_for_format("webp") == "image/webp"
        assert content_type_for_format("tiff") is None

    def test_detect_format(self):
        assert detect_format(make_image_bytes(image_format="PNG")) == "PNG"
        assert detect_format(make_image_bytes(image_format="JPEG")) == "JPEG"
        assert detect_format(b"not an image") is None

    @pytest.mark.parametrize("filename,image_format,expected", [
        ("photo.jpg", "PNG", "photo.png"),
        ("photo.jpeg", "JPEG", "photo.jpeg"),
        ("photo.PNG", "PNG", "photo.PNG"),
        ("photo", "WEBP", "photo.webp"),
        ("photo.png", None, "photo.png"),
        ("scan.png", "TIFF", "scan.png"),
    ])
    def test_align_extension(self, filename, image_format, expected):
        assert align_extension(filename, image_format) == expected
