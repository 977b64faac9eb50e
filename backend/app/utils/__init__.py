"""
通用工具模块包
提供项目通用的工具函数和辅助类
"""

from .config_utils import (
    get_project_root,
    get_workspace_path,
    get_config_path,
    parse_list_config,
)

from .file_utils import (
    DEFAULT_CONTENT_TYPE,
    get_file_extension,
    is_valid_image_extension,
    lookup_mime_type,
    get_mime_type,
)

from .id_utils import (
    get_timestamp_ms,
    generate_random_token,
)

__all__ = [
    # config_utils
    'get_project_root', 'get_workspace_path', 'get_config_path', 'parse_list_config',

    # file_utils
    'DEFAULT_CONTENT_TYPE', 'get_file_extension', 'is_valid_image_extension',
    'lookup_mime_type', 'get_mime_type',

    # id_utils
    'get_timestamp_ms', 'generate_random_token',
]
