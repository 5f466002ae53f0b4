# 地方志数据智能管理系统 - 发布流量目标
"""路由流量配置与发布状态之间的转换"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .models import ConfigurationRollout, RevisionRollout, Rollout
from .stepper import sort_rollout


@dataclass
class DesiredTarget:
    """路由中的一条流量目标"""
    configuration_name: str
    revision_name: str  # 配置当前就绪的最新版本
    percent: int = 0
    tag: str = ""


@dataclass
class TrafficTarget:
    """下发到入口的流量分配"""
    tag: str
    configuration_name: str
    revision_name: str
    percent: int


def build_desired_rollout(targets: Iterable[DesiredTarget]) -> Rollout:
    """
    根据路由的流量目标构建期望的发布状态

    同一（标签, 配置）的多条目标合并为一个配置目标, 百分比相加,
    每个配置目标只包含一个期望版本.

    Args:
        targets: 流量目标列表

    Returns:
        期望的发布状态, 已排序
    """
    merged: Dict[Tuple[str, str], ConfigurationRollout] = {}
    for t in targets:
        key = (t.tag, t.configuration_name)
        cfg = merged.get(key)
        if cfg is None:
            cfg = ConfigurationRollout(configuration_name=t.configuration_name, tag=t.tag)
            merged[key] = cfg
        cfg.percent += t.percent
        cfg.revisions = [RevisionRollout(revision_name=t.revision_name, percent=cfg.percent)]

    ro = Rollout(configurations=list(merged.values()))
    sort_rollout(ro)
    return ro


def rollout_traffic(rollout: Rollout) -> List[TrafficTarget]:
    """将发布状态展开为按版本的流量分配, 忽略0%的版本"""
    result = []
    for cfg in rollout.configurations:
        for rev in cfg.revisions:
            if rev.percent == 0:
                continue
            result.append(TrafficTarget(
                tag=cfg.tag,
                configuration_name=cfg.configuration_name,
                revision_name=rev.revision_name,
                percent=rev.percent,
            ))
    return result
