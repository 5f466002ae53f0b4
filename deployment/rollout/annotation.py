# 地方志数据智能管理系统 - 发布状态注解
"""发布状态与字符串注解之间的转换"""

import json
from typing import Any, Dict, Optional

from .exceptions import AnnotationDecodeException
from .logging import get_logger
from .models import Rollout

logger = get_logger(__name__)


_CONFIG_INT_FIELDS = ("percent", "deadline", "starttime", "nextStepTime", "stepDuration", "stepSize")


def _check_int(data: Dict[str, Any], key: str, where: str):
    value = data.get(key)
    if value is None:
        return
    # bool是int的子类, 需要单独排除
    if isinstance(value, bool) or not isinstance(value, int):
        raise AnnotationDecodeException(f"{where}.{key} 必须是整数")


def _check_str(data: Dict[str, Any], key: str, where: str):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise AnnotationDecodeException(f"{where}.{key} 必须是字符串")


def _check_list(data: Dict[str, Any], key: str, where: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise AnnotationDecodeException(f"{where}.{key} 必须是数组")
    return value


def _check_shape(data: Any):
    """检查反序列化结果的结构和字段类型"""
    if not isinstance(data, dict):
        raise AnnotationDecodeException("顶层必须是对象")

    for i, cfg in enumerate(_check_list(data, "configurations", "rollout")):
        where = f"configurations[{i}]"
        if not isinstance(cfg, dict):
            raise AnnotationDecodeException(f"{where} 必须是对象")
        _check_str(cfg, "configurationName", where)
        _check_str(cfg, "tag", where)
        for key in _CONFIG_INT_FIELDS:
            _check_int(cfg, key, where)

        for j, rev in enumerate(_check_list(cfg, "revisions", where)):
            rev_where = f"{where}.revisions[{j}]"
            if not isinstance(rev, dict):
                raise AnnotationDecodeException(f"{rev_where} 必须是对象")
            _check_str(rev, "revisionName", rev_where)
            _check_int(rev, "percent", rev_where)


def encode_rollout(rollout: Rollout) -> str:
    """
    将发布状态序列化为注解字符串

    字段名与已持久化的注解保持一致, 空值字段省略.
    """
    return json.dumps(rollout.to_dict(), ensure_ascii=False, separators=(",", ":"))


def decode_rollout(text: str) -> Rollout:
    """
    解析注解字符串

    Args:
        text: 注解内容

    Returns:
        发布状态, 未经校验

    Raises:
        AnnotationDecodeException: JSON格式或字段类型错误
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise AnnotationDecodeException(str(e))

    _check_shape(data)
    return Rollout.from_dict(data)


def load_previous(text: Optional[str]) -> Optional[Rollout]:
    """
    加载上一次持久化的发布状态

    注解为空、无法解析或校验不通过时返回None, 调用方按没有历史状态处理.
    """
    if not text:
        return None

    try:
        rollout = decode_rollout(text)
    except AnnotationDecodeException as e:
        logger.warning("丢弃无法解析的发布注解", error=e.message)
        return None

    if not rollout.validate():
        logger.warning("丢弃校验失败的发布注解", configurations=len(rollout.configurations))
        return None

    return rollout
