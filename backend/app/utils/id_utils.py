"""
ID生成工具模块
提供唯一文件名所需的时间戳与随机片段
"""

import random
import string
import time


def get_timestamp_ms() -> int:
    """获取当前毫秒时间戳"""
    return int(time.time() * 1000)


def generate_random_token(length: int = 6) -> str:
    """
    生成小写字母与数字组成的随机片段

    Args:
        length: 片段长度，默认6位

    Returns:
        str: 随机片段
    """
    if length < 1:
        raise ValueError("随机片段长度不能小于1位")
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
