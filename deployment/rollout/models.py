# 地方志数据智能管理系统 - 渐进式发布状态
"""
发布状态模型

一个路由可能引用多个配置, 同一配置在带标签的流量目标下也可能同时进行多个发布.
这里的类型会被序列化为字符串注解, 供渐进式发布逻辑在多次调谐之间传递状态.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .logging import rollout_logger


# 默认的整体发布时长（秒）
DEFAULT_DURATION_SECS = 120


@dataclass
class RevisionRollout:
    """发布中的版本"""
    revision_name: str
    # 占整个路由流量的百分比, 而不是在配置目标内的相对比例
    percent: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revisionName": self.revision_name,
            "percent": self.percent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevisionRollout":
        return cls(
            revision_name=data.get("revisionName") or "",
            percent=data.get("percent") or 0,
        )


@dataclass
class ConfigurationRollout:
    """单个配置目标（配置名 + 标签）的发布状态"""
    configuration_name: str
    # 默认目标的标签为空
    tag: str = ""
    # 该配置目标的总流量百分比, 等于下面各版本百分比之和
    percent: int = 0
    # 由旧到新排列. 稳态下为0个（没有就绪版本）或1个（发布完成）,
    # 发布过程中为多个, 最终由最后一个版本承接该目标的全部流量
    revisions: List[RevisionRollout] = field(default_factory=list)
    # 以下均为Unix时间戳（秒）
    deadline: int = 0
    start_time: int = 0
    next_step_time: int = 0
    # 入口成功切换首个1%流量所用的秒数（向上取整）, 不含冷启动时间
    step_duration: int = 0
    # 每一步迁移的流量百分比
    step_size: int = 0

    def done(self) -> bool:
        """该配置目标当前没有进行中的发布"""
        return len(self.revisions) < 2

    def compute_properties(
        self,
        now_ts: float,
        min_step_sec: float,
        duration_secs: float
    ):
        """
        计算步长、步间隔和下一步时间, 在发布开始后首次观测到就绪时调用

        Args:
            now_ts: 当前Unix时间戳（秒）
            min_step_sec: 观测到的单步最短耗时（秒）, 不小于1
            duration_secs: 整体发布时长（秒）, 大于1
        """
        pf = float(self.percent)
        if pf < 2:
            # 已无可迁移的流量
            return

        num_steps = duration_secs / min_step_sec
        # 最小步长为1%, 步数不能超过剩余待迁移的百分点（发布开始时已迁移了1%）.
        # 边界取 percent - 1 而不是 percent: 按 percent < num_steps 判断时,
        # num_steps 落在 (percent - 1, percent] 会得到步长0, 发布永远不会推进
        if pf - 1 < num_steps:
            num_steps = pf - 1

        # 等步长迁移, 最后一步可能更大以吸收取整误差,
        # 例如100%分4步: 1% -> 25% -> 49% -> 74% -> 100%
        step_size = math.floor((pf - 1) / num_steps)
        # 向上取整, 宁可略慢也不要过快
        step_duration = math.ceil(duration_secs / num_steps)

        self.step_duration = int(step_duration)
        self.step_size = int(step_size)
        self.next_step_time = int(now_ts + step_duration)

        rollout_logger(self, __name__).info(
            "计算发布节奏",
            step_size=self.step_size,
            step_duration=self.step_duration,
            next_step_time=self.next_step_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为注解字典, 省略空值字段"""
        result: Dict[str, Any] = {
            "configurationName": self.configuration_name,
        }
        if self.tag:
            result["tag"] = self.tag
        result["percent"] = self.percent
        if self.revisions:
            result["revisions"] = [r.to_dict() for r in self.revisions]
        for key, value in (
            ("deadline", self.deadline),
            ("starttime", self.start_time),
            ("nextStepTime", self.next_step_time),
            ("stepDuration", self.step_duration),
            ("stepSize", self.step_size),
        ):
            if value:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigurationRollout":
        return cls(
            configuration_name=data.get("configurationName") or "",
            tag=data.get("tag") or "",
            percent=data.get("percent") or 0,
            revisions=[RevisionRollout.from_dict(r) for r in data.get("revisions") or []],
            deadline=data.get("deadline") or 0,
            start_time=data.get("starttime") or 0,
            next_step_time=data.get("nextStepTime") or 0,
            step_duration=data.get("stepDuration") or 0,
            step_size=data.get("stepSize") or 0,
        )


@dataclass
class Rollout:
    """路由的整体发布状态"""
    # 先按标签排序, 同一标签内按配置名排序
    configurations: List[ConfigurationRollout] = field(default_factory=list)

    def validate(self) -> bool:
        """
        检查发布状态是否自洽, 在注解反序列化之后调用

        返回False时应丢弃整个对象, 不做部分修复.
        """
        for c in self.configurations:
            # 单个目标不可能超过100%
            if c.percent > 100:
                return False
            if sum(r.percent for r in c.revisions) != c.percent:
                return False
        return True

    def observe_ready(self, now_ts: int, duration_secs: float = DEFAULT_DURATION_SECS):
        """
        为处于发布中但尚未观测到单步耗时的目标计算发布节奏

        单步耗时取 max(1, ceil(now_ts - start_time)), 由首步的实际生效时间
        决定后续所有步的节奏.
        """
        for c in self.configurations:
            if c.step_duration == 0 and c.start_time > 0:
                min_step_sec = max(1, math.ceil(now_ts - c.start_time))
                c.compute_properties(float(now_ts), float(min_step_sec), float(duration_secs))

    def step(self, prev: Optional["Rollout"], now_ts: int) -> "Rollout":
        """
        将期望状态与上一次的状态合并, 返回新的发布状态

        没有上一次状态时直接返回自身.
        """
        from .stepper import step_rollout
        return step_rollout(self, prev, now_ts)

    def next_step_time(self) -> int:
        """进行中的发布里最早的下一步时间, 没有待执行的步时返回0"""
        times = [
            c.next_step_time for c in self.configurations
            if not c.done() and c.next_step_time > 0
        ]
        return min(times) if times else 0

    def to_dict(self) -> Dict[str, Any]:
        if not self.configurations:
            return {}
        return {"configurations": [c.to_dict() for c in self.configurations]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rollout":
        return cls(
            configurations=[
                ConfigurationRollout.from_dict(c) for c in data.get("configurations") or []
            ]
        )
