# 地方志数据智能管理系统 - 发布日志
"""发布决策的结构化日志"""

import logging
import sys
from typing import Any, Dict, Optional
import structlog


# 发布模块各子模块logger的公共父级
ROLLOUT_LOGGER_NAME = "deployment.rollout"
_HANDLER_NAME = "rollout"


def _add_component(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """标注事件来自发布模块"""
    event_dict.setdefault("component", "rollout")
    return event_dict


def setup_logging(level: str = "INFO", json_format: bool = True):
    """
    配置发布模块的日志输出

    只在 deployment.rollout 这一级挂处理器, 不改动根logger,
    重复调用只调整级别和格式.

    Args:
        level: 日志级别
        json_format: 是否输出JSON格式
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_component,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    std_logger = logging.getLogger(ROLLOUT_LOGGER_NAME)
    std_logger.setLevel(getattr(logging, level.upper()))
    std_logger.propagate = False
    if not any(h.get_name() == _HANDLER_NAME for h in std_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        std_logger.addHandler(handler)


def setup_logging_from_settings(settings):
    """按发布配置的 LOG_LEVEL / LOG_FORMAT 初始化日志"""
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_FORMAT == "json")


def get_logger(name: Optional[str] = None):
    """获取发布模块的logger"""
    return structlog.get_logger(name or ROLLOUT_LOGGER_NAME)


def rollout_logger(cfg, name: Optional[str] = None):
    """绑定了配置目标（配置名 + 标签）的logger"""
    return get_logger(name).bind(configuration=cfg.configuration_name, tag=cfg.tag)
