"""
日志消息模板模块
统一管理所有业务日志消息模板，便于维护和国际化
"""

from typing import Dict, Any


class LogMessages:
    """日志消息模板类"""

    # ==================== 通用日志消息 ====================
    START_OPERATION = "开始执行操作: {operation_name}"
    OPERATION_SUCCESS = "操作成功完成: {operation_name}"
    OPERATION_FAILED = "操作执行失败: {operation_name}"

    # ==================== 对象存储相关 ====================
    STORAGE_INIT_START = "开始校验对象存储连通性"
    STORAGE_INIT_SUCCESS = "对象存储初始化成功"
    STORAGE_INIT_FAILED = "对象存储初始化失败"

    STORAGE_UPLOAD_SUCCESS = "对象上传成功"
    STORAGE_UPLOAD_FAILED = "对象上传失败"
    STORAGE_DOWNLOAD_FAILED = "对象下载失败"
    STORAGE_EXISTS_FAILED = "检查对象是否存在失败"
    STORAGE_DELETE_SUCCESS = "对象删除成功"
    STORAGE_DELETE_FAILED = "对象删除失败"
    STORAGE_LIST_FAILED = "列举对象失败"
    STORAGE_RETRY = "存储操作失败，准备重试: {operation_name}"
    STORAGE_METADATA_FAILED = "获取对象元数据失败"
    STORAGE_BASE64_INVALID = "Base64数据解析失败"
    STORAGE_ADAPTER_CREATE_FAILED = "创建存储适配器失败: {adapter}"
    IMAGE_PROCESS_FAILED = "图片处理失败"

    # ==================== 草稿图片迁移相关 ====================
    MOVE_START = "开始迁移对象"
    MOVE_SUCCESS = "对象迁移成功"
    MOVE_FAILED = "对象迁移失败"
    MOVE_SOURCE_LEAKED = "目标已写入但源对象删除失败，留待孤儿清理"
    MIGRATION_BATCH_DONE = "草稿图片批量迁移完成: 成功{published}张，失败{failed}张"
    DRAFT_IMAGES_RETIRED = "草稿已移除已发布图片的跟踪: 移除{retired}张，保留{remaining}张"
    PRODUCT_IMAGE_RECORD_FAILED = "商品图片记录创建失败"

    ORPHAN_CLEANUP_SKIPPED = "草稿不存在，跳过孤儿图片清理"
    ORPHAN_CLEANUP_START = "开始清理草稿孤儿图片"
    ORPHAN_CLEANUP_SUCCESS = "草稿孤儿图片清理完成"
    ORPHAN_CLEANUP_FAILED = "草稿孤儿图片清理失败"

    # ==================== 文件上传相关 ====================
    FILE_UPLOAD_START = "开始文件上传"
    FILE_UPLOAD_SUCCESS = "文件上传成功"
    FILE_UPLOAD_FAILED = "文件上传失败"
    FILE_VALIDATION_FAILED = "文件验证失败"

    # ==================== 数据库操作相关 ====================
    DB_QUERY_START = "开始数据库查询"
    DB_QUERY_SUCCESS = "数据库查询成功"
    DB_QUERY_FAILED = "数据库查询失败"
    DB_UPDATE_START = "开始数据库更新"
    DB_UPDATE_SUCCESS = "数据库更新成功"
    DB_UPDATE_FAILED = "数据库更新失败"

    @classmethod
    def format_message(cls, message_template: str, **kwargs: Any) -> str:
        """格式化日志消息模板"""
        return message_template.format(**kwargs)

    @classmethod
    def get_structured_data(cls, **kwargs: Any) -> Dict[str, Any]:
        """获取结构化日志数据"""
        return kwargs


# 全局实例
log_messages = LogMessages()
