# 地方志数据智能管理系统 - 渐进式发布模块
"""按步迁移版本流量的发布决策"""

from .models import (
    DEFAULT_DURATION_SECS,
    Rollout,
    ConfigurationRollout,
    RevisionRollout,
)
from .stepper import (
    adjust_percentage,
    step_revisions,
    step_config,
    step_rollout,
    sort_rollout,
)
from .annotation import (
    encode_rollout,
    decode_rollout,
    load_previous,
)
from .traffic import (
    DesiredTarget,
    TrafficTarget,
    build_desired_rollout,
    rollout_traffic,
)
from .config import RolloutSettings, get_settings, load_settings
from .exceptions import (
    RolloutException,
    AnnotationDecodeException,
    RolloutConfigException,
)
from .logging import (
    setup_logging,
    setup_logging_from_settings,
    get_logger,
    rollout_logger,
)
from .planner import RolloutPlanner

__all__ = [
    "DEFAULT_DURATION_SECS",
    "Rollout",
    "ConfigurationRollout",
    "RevisionRollout",
    "adjust_percentage",
    "step_revisions",
    "step_config",
    "step_rollout",
    "sort_rollout",
    "encode_rollout",
    "decode_rollout",
    "load_previous",
    "DesiredTarget",
    "TrafficTarget",
    "build_desired_rollout",
    "rollout_traffic",
    "RolloutSettings",
    "get_settings",
    "load_settings",
    "RolloutException",
    "AnnotationDecodeException",
    "RolloutConfigException",
    "setup_logging",
    "setup_logging_from_settings",
    "get_logger",
    "rollout_logger",
    "RolloutPlanner",
]
