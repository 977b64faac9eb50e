"""
通用Pydantic模型
用于标准化API响应
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class StandardResponse(BaseModel):
    """标准化响应模型"""
    status: str = "success"
    message: str = ""
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """错误响应模型"""
    status: str = "error"
    message: str = "操作失败"
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
