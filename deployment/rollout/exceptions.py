# 地方志数据智能管理系统 - 渐进式发布异常
"""发布状态解析与配置相关的异常定义"""

from typing import Any, Dict, List, Optional


class RolloutException(Exception):
    """
    渐进式发布异常基类
    
    Attributes:
        code: 业务错误码
        message: 错误消息
        detail: 详细信息
    """
    code: int = 500
    message: str = "发布状态处理失败"
    
    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[int] = None,
        detail: Optional[Any] = None,
        errors: Optional[List[Dict]] = None
    ):
        self.message = message or self.message
        self.code = code or self.code
        self.detail = detail
        self.errors = errors
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = {
            "code": self.code,
            "message": self.message,
            "data": self.detail
        }
        if self.errors:
            result["errors"] = self.errors
        return result


class AnnotationDecodeException(RolloutException):
    """发布注解解析异常"""
    code = 422
    message = "发布注解格式错误"
    
    def __init__(self, reason: Optional[str] = None, **kwargs):
        message = f"发布注解格式错误: {reason}" if reason else None
        super().__init__(message=message, **kwargs)


class RolloutConfigException(RolloutException):
    """发布配置异常"""
    code = 400
    message = "发布配置无效"
