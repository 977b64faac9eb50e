"""
应用配置管理模块
统一管理所有配置信息，包括环境变量和文件配置
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict

from app.utils.config_utils import (
    get_workspace_path, get_config_path, parse_list_config
)


class Settings(BaseSettings):
    """应用配置类 - 统一管理所有配置信息"""

    # ==================== 基础配置 ====================
    app_name: str = "TeeMeYou Marketplace"
    app_version: str = "1.0.0"
    app_debug: bool = True
    app_env: str = "development"

    # ==================== API配置 ====================
    api_v1_str: str = "/api/v1"
    project_name: str = "TeeMeYou Marketplace API"

    # ==================== 数据库配置 ====================
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "marketplace_dev"
    POSTGRES_PASSWORD: str = "dev_password"
    POSTGRES_DB: str = "marketplace_dev"
    db_echo: bool = False

    # ==================== 上传限制配置 ====================
    max_image_size: int = 10485760   # 10MB
    max_draft_images_per_request: int = 10

    image_formats: str = "jpg,jpeg,png,gif,bmp,webp"

    # ==================== 草稿图片处理配置 ====================
    draft_image_max_width: int = 1200
    draft_image_max_height: int = 1200
    draft_image_quality: int = 85
    draft_image_fit: str = "inside"

    # ==================== 对象存储配置 ====================
    # 适配器: memory | tencent_cos
    storage_adapter: str = "memory"
    # 公开访问路径前缀，对象URL为 /{storage_files_prefix}/{object_key}
    storage_files_prefix: str = "api/files"

    storage_retry_count: int = 3
    storage_retry_min_timeout: float = 0.2
    storage_retry_factor: float = 2.0
    storage_retry_max_timeout: float = 5.0

    storage_default_cache_control: str = "public, max-age=86400"
    storage_temp_cache_control: str = "no-cache, max-age=0"
    storage_product_cache_control: str = "public, max-age=31536000"

    # ==================== COS存储配置 ====================
    cos_secret_id: str = ""
    cos_secret_key: str = ""
    cos_region: str = "ap-beijing"
    cos_bucket: str = ""
    cos_scheme: str = "https"
    cos_timeout: int = 30

    # ==================== 日志配置 ====================
    log_level: str = "INFO"
    log_dir: str = "log"
    log_file: str = "backend.log"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ==================== 应用服务配置 ====================
    app_port: int = 8080
    app_host: str = "0.0.0.0"

    # ==================== 验证器 ====================
    @field_validator("image_formats")
    @classmethod
    def split_image_formats(cls, value: str) -> List[str]:
        """将图片格式字符串转换为列表"""
        return parse_list_config(value)

    @field_validator("storage_files_prefix")
    @classmethod
    def strip_files_prefix(cls, value: str) -> str:
        """去除前缀两端的斜杠"""
        return value.strip("/")

    # ==================== 计算属性 ====================
    @property
    def async_database_url(self) -> str:
        """构建异步数据库连接URL"""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def workspace_dir(self) -> str:
        """获取workspace目录路径"""
        return str(get_workspace_path())

    @property
    def absolute_log_dir(self) -> str:
        """获取绝对日志目录路径"""
        return str(get_workspace_path(self.log_dir))

    @property
    def cos_enabled(self) -> bool:
        """检查COS是否启用"""
        return bool(self.cos_secret_id and self.cos_secret_key and self.cos_bucket)

    @property
    def supported_image_mime_types(self) -> List[str]:
        """获取支持的图片MIME类型列表"""
        mime_type_map = {
            "jpg": "image/jpeg",
            "jpeg": "image/jpeg",
            "png": "image/png",
            "gif": "image/gif",
            "bmp": "image/bmp",
            "webp": "image/webp",
        }
        return sorted({mime_type_map[fmt] for fmt in self.image_formats if fmt in mime_type_map})

    model_config = ConfigDict(
        env_file=get_config_path(".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        validate_default=True
    )


def get_settings(**overrides: Optional[object]) -> Settings:
    """获取应用配置实例"""
    # 环境变量文件加载由外部环境控制（Docker Compose、launch.json等）
    return Settings(**overrides)


# 全局配置实例
settings = get_settings()
