# 地方志数据智能管理系统 - 发布计划
"""供调谐循环使用的发布计划入口"""

from typing import Optional

from .annotation import encode_rollout, load_previous
from .config import RolloutSettings, get_settings
from .logging import get_logger, setup_logging_from_settings
from .models import Rollout

logger = get_logger(__name__)


class RolloutPlanner:
    """
    发布计划器

    每次调谐时用期望状态和上次持久化的注解算出新的发布状态.
    时间戳始终由调用方传入.
    """

    def __init__(self, settings: Optional[RolloutSettings] = None, configure_logging: bool = False):
        self.settings = settings or get_settings()
        # 由调用方决定是否接管发布模块的日志输出
        if configure_logging:
            setup_logging_from_settings(self.settings)

    def plan(self, desired: Rollout, previous_annotation: Optional[str], now_ts: int) -> Rollout:
        """计算新的发布状态, 上次的注解无效时按没有历史状态处理"""
        prev = load_previous(previous_annotation)
        ro = desired.step(prev, now_ts)
        logger.debug(
            "发布计划完成",
            configurations=len(ro.configurations),
            has_previous=prev is not None,
            next_step_time=ro.next_step_time(),
        )
        return ro

    def observe_ready(self, rollout: Rollout, now_ts: int):
        """入口生效后调用, 按配置的发布时长计算节奏"""
        rollout.observe_ready(now_ts, self.settings.DURATION_SECS)

    def annotate(self, rollout: Rollout) -> str:
        """序列化为注解"""
        return encode_rollout(rollout)
